"""Multi-chain paymaster relay.

An HTTP relay that lazily builds one sponsorship handler per chain, plus the
administrative workflows that fund the paymaster and tune its gas-cost bound.
"""

__version__ = "0.1.0"
