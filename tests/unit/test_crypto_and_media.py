import uuid

import pytest

from tezeus.shared.exceptions import CryptoError, UpstreamError, ValidationError
from tezeus.shared.security.crypto import CryptoService, generate_key
from tezeus.workspace.application.services import MediaUploadService
from tezeus.workspace.infrastructure.media_storage import LocalMediaStorage

WS = uuid.UUID("7a9b0c1d-0000-4000-8000-000000000002")


def test_encrypt_decrypt_roundtrip():
    crypto = CryptoService(generate_key())
    envelope = crypto.encrypt({"api_key": "s3cr3t"})
    assert set(envelope) == {"v", "alg", "iv", "ct"}
    assert "s3cr3t" not in envelope["ct"]
    assert crypto.decrypt(envelope) == {"api_key": "s3cr3t"}


def test_decrypt_with_other_key_fails():
    envelope = CryptoService(generate_key()).encrypt({"api_key": "x"})
    with pytest.raises(CryptoError):
        CryptoService(generate_key()).decrypt(envelope)


def test_malformed_envelope_and_bad_keys():
    crypto = CryptoService(generate_key())
    with pytest.raises(CryptoError):
        crypto.decrypt({"alg": "AES-256-GCM"})
    with pytest.raises(CryptoError):
        crypto.decrypt({"alg": "ROT13", "iv": "", "ct": ""})
    with pytest.raises(CryptoError):
        CryptoService("c2hvcnQ")


def test_media_path_layout():
    svc = MediaUploadService(LocalMediaStorage("/tmp/unused", "http://media.test"), clock=lambda: 1700000000.5)
    assert svc.build_path(WS, "logo", "Marca.final.PNG") == f"{WS}/logo-{WS}-1700000000500.png"


@pytest.mark.parametrize("media_type, filename", [("../etc", "a.png"), ("logo", "no-extension"), ("logo", "a.p/ng")])
def test_media_path_rejects_unsafe_input(media_type, filename):
    svc = MediaUploadService(LocalMediaStorage("/tmp/unused", "http://media.test"))
    with pytest.raises(ValidationError):
        svc.build_path(WS, media_type, filename)


async def test_upload_writes_file(tmp_path):
    storage = LocalMediaStorage(str(tmp_path), "http://media.test/", bucket="bucket")
    result = await MediaUploadService(storage, clock=lambda: 1.0).upload(WS, "avatar", "me.jpg", b"jpeg", "image/jpeg")
    assert result == {
        "success": True,
        "url": f"http://media.test/bucket/{WS}/avatar-{WS}-1000.jpg",
        "path": f"{WS}/avatar-{WS}-1000.jpg",
    }
    assert (tmp_path / "bucket" / result["path"]).read_bytes() == b"jpeg"


async def test_storage_rejects_path_escape(tmp_path):
    storage = LocalMediaStorage(str(tmp_path), "http://media.test")
    with pytest.raises(ValueError):
        await storage.put("../../outside.txt", b"x", "text/plain")


async def test_storage_failure_is_upstream_error(tmp_path):
    blocker = tmp_path / "workspace-media"
    blocker.write_text("not a directory")
    svc = MediaUploadService(LocalMediaStorage(str(tmp_path), "http://media.test"))
    with pytest.raises(UpstreamError):
        await svc.upload(WS, "logo", "a.png", b"x", "image/png")
