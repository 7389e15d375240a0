"""
oracle.py - External data capability

Extension point for a future weather/market data feed. There is no data
contract yet: a call succeeds when the caller signs and the referenced
program is usable, and nothing else happens.

Classes:
- OracleProgram: Protocol for external data programs
- NullOracle: Does nothing; records the callers it saw
"""

from typing import List, Protocol, runtime_checkable

from .core import MissingSigner, MalformedOracle


@runtime_checkable
class OracleProgram(Protocol):
    """Protocol for external data programs."""

    def fetch(self, caller: str) -> None:
        """Perform the external lookup on behalf of caller."""
        ...


class NullOracle:
    """OracleProgram that performs no lookup."""

    def __init__(self):
        self.calls: List[str] = []

    def fetch(self, caller: str) -> None:
        self.calls.append(caller)

    def __repr__(self):
        return f"NullOracle({len(self.calls)} calls)"


def fetch_external_data(caller: str, oracle: OracleProgram, verbose: bool = False) -> bool:
    """
    Invoke the external data program for caller.

    Args:
        caller: Signing identity
        oracle: External program to call

    Returns:
        True once the program has been called

    Raises:
        MissingSigner: If caller is empty
        MalformedOracle: If oracle does not implement OracleProgram
    """
    if not isinstance(caller, str) or not caller.strip():
        raise MissingSigner("External data call requires a signer")
    if not isinstance(oracle, OracleProgram):
        raise MalformedOracle(
            f"{type(oracle).__name__} does not implement OracleProgram"
        )
    if verbose:
        print("Fetching weather data from external program...")
    oracle.fetch(caller)
    return True
