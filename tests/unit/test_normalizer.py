"""Tests for the idempotent normalizer passes."""

from __future__ import annotations

import logging

import pytest

from kustoguard.parser.loader import ManifestLoader
from kustoguard.pipeline.normalizer import (
    HACKY_BOOL_MARKER,
    normalize,
    normalize_all,
    unmark_bool,
)
from kustoguard.pipeline.stripper import DEFAULT_SUPERFLUOUS_KEYS, strip_superfluous
from tests.conftest import BROKEN_YAML, DEPLOYMENT_YAML, RENDERED_YAML, stream

MESSY_YAML = f"""\
kind: ConfigMap
data:
  enabled: true{HACKY_BOOL_MARKER}
  script: "echo one   \\necho two\\t\\n"
metadata:
  labels:
    app: web
  name: settings
apiVersion: v1
"""


class TestUnmarkBool:
    @pytest.mark.parametrize("word", ["true", "False", "YES", "no", "on", "Off", "y"])
    def test_exact_token(self, word: str) -> None:
        assert unmark_bool(word + HACKY_BOOL_MARKER) == word

    @pytest.mark.parametrize(
        "value",
        [
            "true",
            HACKY_BOOL_MARKER,
            "xtrue" + HACKY_BOOL_MARKER,
            "true " + HACKY_BOOL_MARKER,
            "true" + HACKY_BOOL_MARKER + " and more",
            "maybe" + HACKY_BOOL_MARKER,
            "prefix-true" + HACKY_BOOL_MARKER,
        ],
    )
    def test_anything_else_is_untouched(self, value: str) -> None:
        assert unmark_bool(value) is None


class TestPasses:
    def test_prunes_parents_emptied_by_stripping(self, loader: ManifestLoader) -> None:
        docs = loader.load_documents(RENDERED_YAML)
        strip_superfluous(docs, DEFAULT_SUPERFLUOUS_KEYS)
        cleaned, modified = normalize(docs[0])
        assert modified
        assert "annotations" not in cleaned.content["metadata"]
        # Untouched by stripping, so it stays even though it is empty.
        volume = cleaned.content["spec"]["template"]["spec"]["volumes"][0]
        assert volume["emptyDir"] == {}

    def test_prune_walks_upwards(self, loader: ManifestLoader) -> None:
        docs = loader.load_documents(
            "apiVersion: v1\nkind: Pod\nmetadata:\n  name: p\nspec:\n  extra:\n    noise: 1\n"
        )
        strip_superfluous(docs, [["spec", "extra", "noise"]])
        cleaned, _ = normalize(docs[0])
        assert "spec" not in cleaned.content

    def test_collapses_bool_marker_to_quoted_string(self, loader: ManifestLoader) -> None:
        cleaned, modified = normalize(loader.load_documents(MESSY_YAML)[0])
        assert modified
        assert cleaned.content["data"]["enabled"] == "true"
        assert 'enabled: "true"' in loader.dump(cleaned)

    def test_marker_inside_other_text_is_preserved(self, loader: ManifestLoader) -> None:
        value = f"see true{HACKY_BOOL_MARKER} docs"
        doc = loader.load_documents(f"apiVersion: v1\nkind: ConfigMap\ndata:\n  note: {value}\n")[0]
        cleaned, modified = normalize(doc)
        assert not modified
        assert cleaned.content["data"]["note"] == value

    def test_multiline_strings_become_literal_blocks(self, loader: ManifestLoader) -> None:
        cleaned, _ = normalize(loader.load_documents(MESSY_YAML)[0])
        assert cleaned.content["data"]["script"] == "echo one\necho two\n"
        assert "script: |\n    echo one\n    echo two\n" in loader.dump(cleaned)

    def test_orders_identity_keys_first(self, loader: ManifestLoader) -> None:
        cleaned, _ = normalize(loader.load_documents(MESSY_YAML)[0])
        assert list(cleaned.content) == ["apiVersion", "kind", "metadata", "data"]
        assert list(cleaned.content["metadata"]) == ["name", "labels"]

    def test_returns_a_copy(self, loader: ManifestLoader) -> None:
        doc = loader.load_documents(MESSY_YAML)[0]
        before = loader.dump(doc)
        normalize(doc)
        assert loader.dump(doc) == before

    def test_documents_with_errors_pass_through(self, loader: ManifestLoader) -> None:
        doc = loader.load_documents(BROKEN_YAML)[0]
        cleaned, modified = normalize(doc)
        assert not modified
        assert cleaned.errors == doc.errors

    def test_clean_document_is_unmodified(self, loader: ManifestLoader) -> None:
        doc = loader.load_documents(DEPLOYMENT_YAML)[0]
        cleaned, modified = normalize(doc)
        assert not modified
        assert loader.dump(cleaned) == DEPLOYMENT_YAML


class TestIdempotence:
    @pytest.mark.parametrize("source", [MESSY_YAML, RENDERED_YAML, DEPLOYMENT_YAML])
    def test_second_pass_changes_nothing(self, loader: ManifestLoader, source: str) -> None:
        docs = loader.load_documents(source)
        strip_superfluous(docs, DEFAULT_SUPERFLUOUS_KEYS)
        once, _ = normalize(docs[0])
        twice, modified = normalize(once)
        assert not modified
        assert loader.dump(twice) == loader.dump(once)

    def test_reloaded_output_is_stable(self, loader: ManifestLoader) -> None:
        once, _ = normalize(loader.load_documents(MESSY_YAML)[0])
        reloaded = loader.load_documents(loader.dump(once))[0]
        again, modified = normalize(reloaded)
        assert not modified
        assert loader.dump(again) == loader.dump(once)


class TestNormalizeAll:
    def test_ors_modified_flags(self, loader: ManifestLoader) -> None:
        docs = loader.load_documents(stream(DEPLOYMENT_YAML, MESSY_YAML))
        cleaned, modified = normalize_all(docs)
        assert modified
        assert [d.kind for d in cleaned] == ["Deployment", "ConfigMap"]

    def test_logs_when_nothing_changed(
        self, loader: ManifestLoader, caplog: pytest.LogCaptureFixture
    ) -> None:
        docs = loader.load_documents(DEPLOYMENT_YAML)
        logger = logging.getLogger("test.normalizer")
        with caplog.at_level(logging.INFO, logger="test.normalizer"):
            _, modified = normalize_all(docs, logger)
        assert not modified
        assert "No changes required" in caplog.text
