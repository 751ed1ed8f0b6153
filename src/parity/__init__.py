"""Schema to migration parity checking."""

from parity.checker import ParityResult, ParityRule, check_parity, replay_chain

__all__ = ["ParityResult", "ParityRule", "check_parity", "replay_chain"]
