from unittest import mock

import pytest
from django.core.files.storage import InMemoryStorage
from django.core.files.uploadedfile import SimpleUploadedFile

from SmartLearnApp.core.exceptions import InfrastructureError
from SmartLearnApp.learning.storage import DefaultStorageArtifactStore, get_artifact_store


def test_store_and_resolve_round_trip():
    store = DefaultStorageArtifactStore(storage=InMemoryStorage(base_url="/media/"))
    ref = store.store(7, 3, SimpleUploadedFile("answer.txt", b"42"))
    assert ref.startswith("submissions/7/3/")
    assert ref.endswith(".txt")
    assert store.resolve(ref) == f"/media/{ref}"
    with store.storage.open(ref) as fh:
        assert fh.read() == b"42"


def test_storage_failure_surfaces_as_infrastructure_error(caplog):
    storage = mock.Mock()
    storage.save.side_effect = OSError("disk full")
    store = DefaultStorageArtifactStore(storage=storage)
    with pytest.raises(InfrastructureError) as exc:
        store.store(1, 1, SimpleUploadedFile("a.pdf", b"x"))
    assert exc.value.status_code == 503
    assert "Artifact store failed" in caplog.text


def test_configured_store_class(settings):
    assert isinstance(get_artifact_store(), DefaultStorageArtifactStore)
    settings.SMARTLEARN = {**settings.SMARTLEARN, "ARTIFACT_STORE": "unittest.mock.MagicMock"}
    assert isinstance(get_artifact_store(), mock.MagicMock)


def test_owns_only_issued_refs_in_scope():
    store = DefaultStorageArtifactStore(storage=InMemoryStorage())
    ref = store.store(7, 3, SimpleUploadedFile("answer.pdf", b"%PDF"))
    assert store.owns(7, 3, ref)
    assert not store.owns(8, 3, ref)
    assert not store.owns(7, 4, ref)
    assert not store.owns(7, 3, "submissions/7/3/never-stored.pdf")
    assert not store.owns(7, 3, "submissions/7/3/../../8/3/x.pdf")
    assert not store.owns(7, 3, "submissions/7/30/" + ref.rsplit("/", 1)[-1])
