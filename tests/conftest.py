"""Pytest bootstrap configuration.

Point the application at the filesystem mock store before any module
that reads settings is imported.
"""
import os
import shutil
import tempfile
from pathlib import Path

import pytest

MOCK_ROOT = tempfile.mkdtemp(prefix="photo-upload-tests-")

os.environ.setdefault("STORAGE__USE_MOCK", "true")
os.environ.setdefault("STORAGE__LOCAL_BASE_PATH", MOCK_ROOT)
os.environ.setdefault("STORAGE__PUBLIC_BASE_URL", "http://testserver/mock-storage")



@pytest.fixture
def mock_config(tmp_path):
    from infrastructure.external.storage import StorageConfig, StorageType

    return StorageConfig(
        type=StorageType.MOCK,
        local_base_path=str(tmp_path),
        public_base_url="http://testserver/mock-storage",
    )


@pytest.fixture
def mock_storage(mock_config):
    from infrastructure.external.storage.providers.mock import MockPhotoStorage

    return MockPhotoStorage(mock_config)


@pytest.fixture
def client():
    """API client over a freshly emptied mock store."""
    from fastapi.testclient import TestClient

    root = Path(MOCK_ROOT)
    shutil.rmtree(root, ignore_errors=True)
    root.mkdir(parents=True, exist_ok=True)

    from main import app

    with TestClient(app) as c:
        yield c
