"""
Contract ABI encoding and decoding.

Every value occupies whole 32-byte words. Dynamic values (``bytes``,
``string``, ``T[]``) are written inline as a length word followed by their
content; no head/tail offsets are emitted. Multi-output decoding advances
one word per output. Calldata produced here therefore round-trips fixed-width
scalars and single dynamic values only.
"""

import json
import re
from typing import Any, Dict, List, Optional, Sequence, Union

from web3 import Web3

from .constants import WORD_SIZE
from .exceptions import (
    AbiDecodingError,
    AbiEncodingError,
    ArgumentCountMismatch,
    UnrecognizedAbiEntry,
)
from .utils import strip_hex_prefix

_INT_TYPE = re.compile(r"^(u?)int(\d*)$")
_FIXED_BYTES_TYPE = re.compile(r"^bytes([1-9]|[12]\d|3[0-2])$")
_FIXED_ARRAY_TYPE = re.compile(r"^(.+)\[(\d+)\]$")

VALID_ENTRY_TYPES = {"function", "constructor", "event", "fallback", "receive", "error"}

AbiParam = Union[str, Dict[str, Any]]


# Signatures


def canonical_type(param: AbiParam) -> str:
    """
    Return the canonical signature form of a parameter type.

    Accepts either a bare type string or an ABI input entry. ``uint``/``int``
    aliases expand to their 256-bit forms and ``tuple`` entries expand to
    their parenthesised component list.

    Args:
        param: Type string (e.g. "uint") or ABI entry (e.g. {"type": "uint"})

    Returns:
        Canonical type string (e.g. "uint256")
    """
    if isinstance(param, str):
        type_, components = param, []
    else:
        type_, components = param.get("type", "unknown"), param.get("components", [])

    suffix = ""
    while type_.endswith("]"):
        bracket = type_.rindex("[")
        suffix = type_[bracket:] + suffix
        type_ = type_[:bracket]

    if type_ == "tuple":
        type_ = "(" + ",".join(canonical_type(c) for c in components) + ")"
    else:
        match = _INT_TYPE.match(type_)
        if match and not match.group(2):
            type_ = f"{match.group(1)}int256"

    return type_ + suffix


def method_signature(name: str, inputs: Sequence[AbiParam]) -> str:
    """Build ``name(type1,type2,...)`` from ABI inputs or type strings."""
    return f"{name}({','.join(canonical_type(i) for i in inputs)})"


def function_selector(name: str, inputs: Sequence[AbiParam]) -> bytes:
    """
    Compute the 4-byte function selector.

    Args:
        name: Method name
        inputs: ABI inputs or type strings

    Returns:
        First 4 bytes of keccak256 over the canonical signature
    """
    return bytes(Web3.keccak(text=method_signature(name, inputs))[:4])


# Encoding


def encode_call(name: str, args: Sequence[Any], inputs: Sequence[AbiParam]) -> bytes:
    """Encode a method call: selector followed by the encoded arguments."""
    return function_selector(name, inputs) + encode_parameters(args, inputs)


def encode_constructor(
    args: Sequence[Any], constructor: Optional[Dict[str, Any]], bytecode: str
) -> bytes:
    """
    Encode deployment data: bytecode followed by encoded constructor arguments.

    Arguments are ignored when there is no constructor entry or it declares
    no inputs.
    """
    try:
        code = bytes.fromhex(strip_hex_prefix(bytecode))
    except ValueError as e:
        raise AbiEncodingError(f"Invalid bytecode hex: {e}") from e

    if constructor is None or not constructor.get("inputs"):
        return code

    return code + encode_parameters(args, constructor["inputs"])


def encode_parameters(args: Sequence[Any], inputs: Sequence[AbiParam]) -> bytes:
    """
    Encode a positional argument list against ABI inputs.

    Raises:
        ArgumentCountMismatch: If len(args) != len(inputs)
        AbiEncodingError: If a value cannot be encoded for its type
    """
    if len(args) != len(inputs):
        raise ArgumentCountMismatch(len(inputs), len(args))

    return b"".join(
        encode_parameter(value, _type_of(param)) for value, param in zip(args, inputs)
    )


def encode_parameter(value: Any, type_: str) -> bytes:
    """Encode one value; unknown types fall back to the uint256 rule."""
    if type_.endswith("[]"):
        return _encode_array(value, type_[:-2])

    fixed_array = _FIXED_ARRAY_TYPE.match(type_)
    if fixed_array:
        return _encode_fixed_array(value, fixed_array.group(1), int(fixed_array.group(2)))

    int_match = _INT_TYPE.match(type_)
    if int_match:
        bits = int(int_match.group(2) or 256)
        return encode_int(value, bits, signed=int_match.group(1) != "u")

    if type_ == "address":
        return encode_address(value)

    if type_ == "bool":
        return encode_bool(value)

    bytes_match = _FIXED_BYTES_TYPE.match(type_)
    if bytes_match:
        return _encode_fixed_bytes(value, int(bytes_match.group(1)))

    if type_ == "bytes":
        return _encode_dynamic(_to_bytes(value))

    if type_ == "string":
        return _encode_dynamic(str(value).encode("utf-8"))

    return encode_int(value, 256, signed=False)


def encode_int(value: Any, bits: int = 256, signed: bool = False) -> bytes:
    """
    Encode an integer into one word.

    Negative values of signed types are written in two's complement across
    the full word. Values outside the range of the declared width are rejected.
    """
    n = _to_int(value)

    if signed:
        low, high = -(2 ** (bits - 1)), 2 ** (bits - 1)
    else:
        low, high = 0, 2**bits

    if not low <= n < high:
        kind = "int" if signed else "uint"
        raise AbiEncodingError(f"Value {n} out of range for {kind}{bits}")

    if n < 0:
        n += 2 ** (WORD_SIZE * 8)

    return n.to_bytes(WORD_SIZE, "big")


def encode_address(value: Any) -> bytes:
    """Encode an address as its low 20 bytes right-aligned in a word."""
    if isinstance(value, (bytes, bytearray)):
        n = int.from_bytes(value, "big")
    elif isinstance(value, int):
        n = value
    else:
        try:
            n = int(strip_hex_prefix(str(value)) or "0", 16)
        except ValueError as e:
            raise AbiEncodingError(f"Invalid address: {value!r}") from e

    return (n & (2**160 - 1)).to_bytes(WORD_SIZE, "big")


def encode_bool(value: Any) -> bytes:
    if isinstance(value, str):
        value = value.strip().lower() not in ("", "0", "false")
    return (1 if value else 0).to_bytes(WORD_SIZE, "big")


def _encode_fixed_bytes(value: Any, size: int) -> bytes:
    data = _to_bytes(value)
    if len(data) > size:
        raise AbiEncodingError(f"Value of {len(data)} bytes does not fit bytes{size}")
    return data.ljust(WORD_SIZE, b"\x00")


def _encode_dynamic(data: bytes) -> bytes:
    padded_len = -(-len(data) // WORD_SIZE) * WORD_SIZE
    return len(data).to_bytes(WORD_SIZE, "big") + data.ljust(padded_len, b"\x00")


def _encode_array(value: Any, base_type: str) -> bytes:
    items = _to_list(value)
    return len(items).to_bytes(WORD_SIZE, "big") + b"".join(
        encode_parameter(item, base_type) for item in items
    )


def _encode_fixed_array(value: Any, base_type: str, size: int) -> bytes:
    items = _to_list(value)
    if len(items) != size:
        raise AbiEncodingError(
            f"Expected {size} elements for {base_type}[{size}], got {len(items)}"
        )
    return b"".join(encode_parameter(item, base_type) for item in items)


def _to_int(value: Any) -> int:
    if isinstance(value, bool):
        return int(value)
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            if text[:2] in ("0x", "0X"):
                return int(text[2:] or "0", 16)
            return int(text, 10)
        except ValueError as e:
            raise AbiEncodingError(f"Invalid integer: {value!r}") from e
    raise AbiEncodingError(f"Cannot encode {type(value).__name__} as integer")


def _to_bytes(value: Any) -> bytes:
    if isinstance(value, (bytes, bytearray)):
        return bytes(value)
    try:
        return bytes.fromhex(strip_hex_prefix(str(value)))
    except ValueError as e:
        raise AbiEncodingError(f"Invalid hex bytes: {value!r}") from e


def _to_list(value: Any) -> List[Any]:
    if not isinstance(value, (list, tuple)):
        raise AbiEncodingError(f"Expected a list for array type, got {type(value).__name__}")
    return list(value)


def _type_of(param: AbiParam) -> str:
    return param if isinstance(param, str) else param.get("type", "")


# Decoding


def decode_result(data: Union[str, bytes], outputs: Sequence[AbiParam]) -> Any:
    """
    Decode call return data.

    Args:
        data: Return data as hex string (with or without 0x) or raw bytes
        outputs: ABI outputs or type strings

    Returns:
        None for no outputs, a scalar for one output, else a list in output order

    Raises:
        AbiDecodingError: If data is too short for the declared outputs
    """
    raw = _to_raw(data)

    if not outputs:
        return None

    if len(outputs) == 1:
        return decode_parameter(raw, _type_of(outputs[0]) or "uint256")

    return [
        decode_parameter(raw[index * WORD_SIZE:], _type_of(output) or "uint256")
        for index, output in enumerate(outputs)
    ]


def decode_parameter(raw: bytes, type_: str) -> Any:
    """Decode the value starting at the first word of ``raw``."""
    word = _word(raw)

    int_match = _INT_TYPE.match(type_)
    if int_match:
        n = int.from_bytes(word, "big")
        if int_match.group(1) != "u" and n >= 2 ** (WORD_SIZE * 8 - 1):
            n -= 2 ** (WORD_SIZE * 8)
        return n

    if type_ == "address":
        return decode_address(word)

    if type_ == "bool":
        return int.from_bytes(word, "big") != 0

    if type_ == "string":
        length = int.from_bytes(word, "big")
        body = raw[WORD_SIZE:WORD_SIZE + length]
        if len(body) < length:
            raise AbiDecodingError(f"String of {length} bytes truncated to {len(body)}")
        try:
            return body.decode("utf-8")
        except UnicodeDecodeError as e:
            raise AbiDecodingError(f"String output is not valid UTF-8: {e}") from e

    return "0x" + word.hex()


def decode_address(word: Union[str, bytes]) -> str:
    """Return the last 20 bytes of a word as a lowercase 0x-prefixed address."""
    return "0x" + _word(_to_raw(word))[-20:].hex()


def _word(raw: bytes) -> bytes:
    word = raw[:WORD_SIZE]
    if len(word) < WORD_SIZE:
        raise AbiDecodingError(f"Expected a {WORD_SIZE}-byte word, got {len(word)} bytes")
    return word


def _to_raw(data: Union[str, bytes]) -> bytes:
    if isinstance(data, (bytes, bytearray)):
        return bytes(data)
    try:
        return bytes.fromhex(strip_hex_prefix(data))
    except ValueError as e:
        raise AbiDecodingError(f"Invalid hex return data: {e}") from e


# ABI document helpers


def load_abi(abi: Union[str, List[Dict[str, Any]], None]) -> List[Dict[str, Any]]:
    """Accept an ABI as JSON text or a parsed list; None yields an empty ABI."""
    if abi is None:
        return []
    if isinstance(abi, str):
        try:
            abi = json.loads(abi)
        except json.JSONDecodeError as e:
            raise UnrecognizedAbiEntry(f"Invalid ABI format: {e}") from e
    if not isinstance(abi, list):
        raise UnrecognizedAbiEntry("Invalid ABI format: must be a JSON array")
    return abi


def validate_abi(abi: Any) -> bool:
    """Check that every entry is an object with a recognised ``type``."""
    if not isinstance(abi, list):
        return False
    return all(
        isinstance(entry, dict) and entry.get("type") in VALID_ENTRY_TYPES for entry in abi
    )


def find_constructor(abi: Sequence[Dict[str, Any]]) -> Optional[Dict[str, Any]]:
    """First entry with ``type == "constructor"``, or None."""
    for entry in abi:
        if isinstance(entry, dict) and entry.get("type") == "constructor":
            return entry
    return None


def find_method(abi: Sequence[Dict[str, Any]], name: str) -> Dict[str, Any]:
    """
    Find a function entry by name.

    Raises:
        UnrecognizedAbiEntry: If no function with that name exists
    """
    for entry in abi:
        if (
            isinstance(entry, dict)
            and entry.get("type") == "function"
            and entry.get("name") == name
        ):
            return entry
    raise UnrecognizedAbiEntry(f"Method '{name}' not found in ABI")


def is_read_only(entry: Dict[str, Any]) -> bool:
    """Whether an ABI function entry is view/pure."""
    if "stateMutability" in entry:
        return entry["stateMutability"] in ("view", "pure")
    return bool(entry.get("constant", False))
