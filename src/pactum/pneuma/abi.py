"""
ABI handling for contract invocations.

The platform encodes the call; this module only normalises the ABI the caller
hands in and checks the named arguments against it with eth-abi before any
remote build is attempted.
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Union

from eth_abi import is_encodable

from ..errors import InvalidContractCallError

AbiLike = Union[list, dict, str, Path]


def normalize_abi(abi: AbiLike) -> list[dict[str, Any]]:
    """
    Return the ABI as a list of entries.

    Accepts a list of entries, a JSON string, a path to a JSON file, or a
    Foundry/Hardhat artifact dict with an ``abi`` key.
    """
    if isinstance(abi, Path) or (isinstance(abi, str) and abi.endswith(".json") and Path(abi).is_file()):
        with Path(abi).open("r", encoding="utf-8") as f:
            abi = json.load(f)
    elif isinstance(abi, str):
        abi = json.loads(abi)

    if isinstance(abi, dict):
        abi = abi.get("abi", [abi])
    if not isinstance(abi, list):
        raise ValueError("ABI must be a list of entries")
    return abi


def _canonical_type(param: dict[str, Any]) -> str:
    abi_type = param["type"]
    if abi_type.startswith("tuple"):
        inner = ",".join(_canonical_type(c) for c in param.get("components", []))
        return f"({inner}){abi_type[len('tuple'):]}"
    return abi_type


def _coerce(param: dict[str, Any], value: Any) -> Any:
    """Convert JSON-friendly values (decimal strings, dicts) into eth-abi values."""
    abi_type: str = param["type"]
    if abi_type.endswith("]"):
        element = dict(param, type=abi_type[: abi_type.rindex("[")])
        return [_coerce(element, v) for v in value] if isinstance(value, (list, tuple)) else value
    if abi_type == "tuple":
        components = param.get("components", [])
        if isinstance(value, dict):
            value = [value.get(c["name"]) for c in components]
        if isinstance(value, (list, tuple)):
            return tuple(_coerce(c, v) for c, v in zip(components, value))
        return value
    if abi_type.startswith(("int", "uint")) and isinstance(value, str):
        try:
            return int(value, 0)
        except ValueError:
            return value
    if abi_type.startswith("bytes") and isinstance(value, str) and value.startswith("0x"):
        try:
            return bytes.fromhex(value[2:])
        except ValueError:
            return value
    return value


def find_method(abi: list[dict[str, Any]], method: str, args: dict[str, Any]) -> dict[str, Any]:
    """Find the function entry for ``method`` whose input names match ``args``."""
    candidates = [entry for entry in abi if entry.get("type", "function") == "function" and entry.get("name") == method]
    if not candidates:
        raise InvalidContractCallError(method, "method not found in ABI")
    for entry in candidates:
        if {p.get("name") for p in entry.get("inputs", [])} == set(args):
            return entry
    return candidates[0]


def validate_call(abi: AbiLike, method: str, args: dict[str, Any]) -> list[dict[str, Any]]:
    """
    Check that ``args`` satisfy ``method``'s inputs.

    Args:
        abi: Contract ABI (see :func:`normalize_abi`)
        method: Function name
        args: Arguments keyed by input name

    Returns:
        The normalised ABI

    Raises:
        InvalidContractCallError: If the method is unknown or an argument
                                  is missing, unexpected or not encodable
    """
    entries = normalize_abi(abi)
    entry = find_method(entries, method, args)
    inputs = entry.get("inputs", [])

    expected = [p.get("name") for p in inputs]
    missing = [name for name in expected if name not in args]
    if missing:
        raise InvalidContractCallError(method, f"missing arguments {missing}")
    unexpected = sorted(set(args) - set(expected))
    if unexpected:
        raise InvalidContractCallError(method, f"unexpected arguments {unexpected}")

    for param in inputs:
        value = _coerce(param, args[param["name"]])
        if not is_encodable(_canonical_type(param), value):
            raise InvalidContractCallError(
                method, f"argument {param['name']!r} is not a valid {param['type']}: {args[param['name']]!r}"
            )
    return entries
