"""kustoguard: render, clean and validate kustomize output in CI."""

__version__ = "0.3.0"
