"""Shared test fixtures for kustoguard."""

from __future__ import annotations

import sys
from collections.abc import Callable
from pathlib import Path

import pytest

from kustoguard.parser.loader import ManifestLoader
from kustoguard.settings import Settings


@pytest.fixture
def loader() -> ManifestLoader:
    return ManifestLoader()


@pytest.fixture
def make_settings(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Callable[..., Settings]:
    """Settings isolated from the developer's environment and .env file."""
    monkeypatch.chdir(tmp_path)

    def _make(**overrides: object) -> Settings:
        overrides.setdefault("kustomize_path", tmp_path)
        overrides.setdefault("validate_schema", False)
        return Settings(_env_file=None, **overrides)

    return _make


@pytest.fixture
def fake_binary(tmp_path: Path) -> Callable[[str, str], Path]:
    """Write an executable Python script standing in for an external tool."""
    bin_dir = tmp_path / "bin"
    bin_dir.mkdir(exist_ok=True)

    def _make(name: str, body: str) -> Path:
        path = bin_dir / name
        path.write_text(f"#!{sys.executable}\nimport json, os, sys\n{body}\n", encoding="utf-8")
        path.chmod(0o755)
        return path

    return _make


DEPLOYMENT_YAML = """\
apiVersion: apps/v1
kind: Deployment
metadata:
  name: web
  namespace: shop
  labels:
    app: web
spec:
  replicas: 2
  selector:
    matchLabels:
      app: web
  template:
    metadata:
      labels:
        app: web
    spec:
      containers:
      - name: web
        image: registry.example.com/shop/web:1.4.2
        ports:
        - containerPort: 8080
"""

SECRET_YAML = """\
apiVersion: v1
kind: Secret
metadata:
  name: db-credentials
  namespace: shop
type: Opaque
data:
  username: YWRtaW4=
  password: aHVudGVyMg==
"""

CONFIGMAP_YAML = """\
apiVersion: v1
kind: ConfigMap
metadata:
  name: settings
  namespace: shop
data:
  LOG_LEVEL: info
"""

BROKEN_YAML = """\
apiVersion: v1
kind: ConfigMap
metadata:
  name: broken
data:
  key: [unclosed
"""

# What kustomize typically emits: build annotations and empty status blocks.
RENDERED_YAML = """\
apiVersion: apps/v1
kind: Deployment
metadata:
  annotations:
    config.kubernetes.io/origin: |
      path: base/deployment.yaml
  creationTimestamp: null
  name: web
  namespace: shop
spec:
  replicas: 2
  selector:
    matchLabels:
      app: web
  template:
    metadata:
      creationTimestamp: null
      labels:
        app: web
    spec:
      containers:
      - image: registry.example.com/shop/web:1.4.2
        name: web
      volumes:
      - emptyDir: {}
        name: cache
status: {}
"""


def stream(*documents: str) -> str:
    """Join documents the way kustomize does."""
    return "---\n".join(documents)
