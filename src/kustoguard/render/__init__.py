"""Templating-tool invocation."""

from kustoguard.render.kustomize import RenderError, render

__all__ = [
    "RenderError",
    "render",
]
