"""Blue-green cutover orchestration for staged environments."""

__version__ = "0.1.0"
