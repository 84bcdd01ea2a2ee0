"""Minimal ABIs for the contracts the relay touches."""

from __future__ import annotations

from typing import Any


def _view(name: str, inputs: list[tuple[str, str]], outputs: list[tuple[str, str]]) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "view",
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [{"name": n, "type": t} for n, t in outputs],
    }


def _mutating(name: str, inputs: list[tuple[str, str]], payable: bool = False) -> dict[str, Any]:
    return {
        "type": "function",
        "name": name,
        "stateMutability": "payable" if payable else "nonpayable",
        "inputs": [{"name": n, "type": t} for n, t in inputs],
        "outputs": [],
    }


ENTRYPOINT_ABI: list[dict[str, Any]] = [
    _view("balanceOf", [("account", "address")], [("", "uint256")]),
    _view(
        "getDepositInfo",
        [("account", "address")],
        [
            ("deposit", "uint256"),
            ("staked", "bool"),
            ("stake", "uint112"),
            ("unstakeDelaySec", "uint32"),
            ("withdrawTime", "uint48"),
        ],
    ),
    _mutating("depositTo", [("account", "address")], payable=True),
]

PAYMASTER_ABI: list[dict[str, Any]] = [
    _view("owner", [], [("", "address")]),
    _view("entryPoint", [], [("", "address")]),
    _view("verifyingSigner", [], [("", "address")]),
    _view("maxAllowedGasCost", [], [("", "uint256")]),
    _view("VERSION", [], [("", "string")]),
    _mutating("deposit", [], payable=True),
    _mutating("setMaxAllowedGasCost", [("_maxAllowedGasCost", "uint256")]),
]
