"""Engine and tool registries, sandboxed execution contexts and a script standard library."""

__version__ = "0.1.0"