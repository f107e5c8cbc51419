"""Document transformation stages and the pipeline that sequences them."""

from kustoguard.pipeline.normalizer import normalize, normalize_all
from kustoguard.pipeline.orchestrator import ManifestPipeline, PipelineResult, PipelineState
from kustoguard.pipeline.secrets import check_secrets
from kustoguard.pipeline.serializer import serialize
from kustoguard.pipeline.stripper import DEFAULT_SUPERFLUOUS_KEYS, strip_superfluous

__all__ = [
    "DEFAULT_SUPERFLUOUS_KEYS",
    "ManifestPipeline",
    "PipelineResult",
    "PipelineState",
    "check_secrets",
    "normalize",
    "normalize_all",
    "serialize",
    "strip_superfluous",
]
