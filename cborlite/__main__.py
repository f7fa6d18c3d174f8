"""Entry point: python -m cborlite [encode|decode|dump] ARG"""

import binascii
import json
import sys

import structlog

from cborlite.codec import CborError, decode, encode
from cborlite.config import Settings
from cborlite.logging_config import configure_logging
from cborlite.reader import CborReader
from cborlite.wire import SIZE_MAX, MajorType, SimpleValue, Size

_SIMPLE_NAMES = {
    SimpleValue.FALSE: "false",
    SimpleValue.TRUE: "true",
    SimpleValue.NULL: "null",
    SimpleValue.UNDEFINED: "undefined",
}

USAGE = "Usage: python -m cborlite [encode JSON|decode HEX|dump HEX]"


def _parse_hex(text: str) -> bytes:
    try:
        return binascii.unhexlify("".join(text.split()))
    except (binascii.Error, ValueError) as exc:
        raise CborError(f"invalid hex input: {exc}") from None


def _to_jsonable(value):
    if isinstance(value, bytes):
        return value.hex()
    if isinstance(value, list):
        return [_to_jsonable(item) for item in value]
    if isinstance(value, dict):
        return {_json_key(k): _to_jsonable(v) for k, v in value.items()}
    if value is None or isinstance(value, (bool, int, str)):
        return value
    # UNDEFINED has no JSON counterpart
    return None


def _json_key(key) -> str:
    """Render a map key the way the same value would appear in JSON output."""
    rendered = _to_jsonable(key)
    if isinstance(rendered, str):
        return rendered
    return json.dumps(rendered)


def _dump_item(reader: CborReader, depth: int, max_nesting: int, lines: list[str]) -> None:
    indent = "  " * depth
    offset = reader.offset
    major_type = reader.peek_major_type()

    if major_type == MajorType.UNSIGNED:
        size, value = reader.read_unsigned()
        if size == Size.NONE:
            raise CborError(f"malformed unsigned integer at offset {offset}")
        lines.append(f"{indent}unsigned {value}")
    elif major_type in (MajorType.BYTE_STRING, MajorType.TEXT_STRING):
        is_bytes = major_type == MajorType.BYTE_STRING
        view = reader.read_data() if is_bytes else reader.read_text()
        if view is None:
            raise CborError(f"truncated string at offset {offset}")
        if is_bytes:
            lines.append(f"{indent}bytes({len(view)}) {view.hex()}")
        else:
            text = bytes(view).decode("utf-8", "backslashreplace")
            lines.append(f"{indent}text({len(view)}) {json.dumps(text)}")
    elif major_type in (MajorType.ARRAY, MajorType.MAP):
        if depth >= max_nesting:
            raise CborError(f"nesting deeper than {max_nesting} at offset {offset}")
        is_array = major_type == MajorType.ARRAY
        count = reader.read_array() if is_array else reader.read_map()
        if count == SIZE_MAX:
            raise CborError(f"malformed container header at offset {offset}")
        lines.append(f"{indent}{'array' if is_array else 'map'}({count})")
        for _ in range(count if is_array else 2 * count):
            _dump_item(reader, depth + 1, max_nesting, lines)
    elif major_type == MajorType.SIMPLE:
        code = reader.read_simple()
        lines.append(f"{indent}simple {_SIMPLE_NAMES.get(code, f'0x{code:02X}')}")
    elif major_type == MajorType.NONE:
        raise CborError(f"unexpected end of input at offset {offset}")
    else:
        raise CborError(f"unsupported major type {major_type >> 5} at offset {offset}")


def run_encode(arg: str, settings: Settings) -> str:
    try:
        value = json.loads(arg)
    except json.JSONDecodeError as exc:
        raise CborError(f"invalid JSON input: {exc}") from None
    return encode(value, max_nesting=settings.CBOR_MAX_NESTING).hex()


def run_decode(arg: str, settings: Settings) -> str:
    value = decode(
        _parse_hex(arg),
        strict=settings.CBOR_STRICT_READ,
        max_nesting=settings.CBOR_MAX_NESTING,
    )
    return json.dumps(_to_jsonable(value))


def run_dump(arg: str, settings: Settings) -> str:
    reader = CborReader(_parse_hex(arg), strict=settings.CBOR_STRICT_READ)
    lines: list[str] = []
    while reader.remaining:
        _dump_item(reader, 0, settings.CBOR_MAX_NESTING, lines)
    return "\n".join(lines)


COMMANDS = {
    "encode": run_encode,
    "decode": run_decode,
    "dump": run_dump,
}


def main(argv: list[str] | None = None) -> int:
    argv = sys.argv[1:] if argv is None else argv
    if len(argv) != 2 or argv[0] not in COMMANDS:
        print(USAGE)
        return 1

    command, arg = argv
    settings = Settings()
    configure_logging(settings.LOG_SERVICE_NAME, settings.LOG_LEVEL)
    log = structlog.get_logger()

    try:
        output = COMMANDS[command](arg, settings)
    except CborError as exc:
        log.debug("command failed", command=command, error=str(exc))
        print(f"Error: {exc}")
        return 1

    print(output)
    return 0


if __name__ == "__main__":
    sys.exit(main())
