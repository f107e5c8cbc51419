"""YAML stream parsing with line fidelity for kustoguard."""

from kustoguard.parser.loader import ManifestLoader, YAMLSafetyError

__all__ = [
    "ManifestLoader",
    "YAMLSafetyError",
]
