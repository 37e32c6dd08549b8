"""loopgen -- scaffolding generators for LoopBack applications."""

__version__ = "0.1.0"
