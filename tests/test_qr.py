"""Tests for the active QR code display."""

import pytest

from digital_menu.core.exceptions import ExternalServiceError, NotFoundError, ValidationError
from digital_menu.models import QRCode
from digital_menu.services.qr_service import QRCodeService, render_qr

API = "/api/v1"

PNG_BYTES = b"\x89PNG\r\n\x1a\n" + b"\x00" * 64


class TestRenderQr:
    def test_png(self):
        assert render_qr("https://menu.example.com/table/1").startswith(b"\x89PNG")

    def test_svg(self):
        assert b"<svg" in render_qr("https://menu.example.com/table/1", "svg")


class TestQRCodeService:
    def test_no_active_code(self, db_session, blob_store):
        with pytest.raises(NotFoundError):
            QRCodeService(db_session, blob_store).get_active()

    def test_upload_activates(self, db_session, blob_store):
        qr = QRCodeService(db_session, blob_store).upload(PNG_BYTES, "qr.png", "image/png")
        assert qr.is_active is True
        assert qr.public_id in blob_store.blobs
        assert QRCodeService(db_session, blob_store).get_active().id == qr.id

    def test_replacing_keeps_one_active(self, db_session, blob_store):
        service = QRCodeService(db_session, blob_store)
        first = service.upload(PNG_BYTES, "first.png", "image/png")
        second = service.generate("https://menu.example.com")

        assert service.get_active().id == second.id
        assert db_session.query(QRCode).filter(QRCode.is_active.is_(True)).count() == 1
        assert blob_store.deleted == [first.public_id]

    def test_non_image_rejected(self, db_session, blob_store):
        with pytest.raises(ValidationError):
            QRCodeService(db_session, blob_store).upload(b"hello", "qr.txt", "text/plain")
        assert blob_store.blobs == {}

    def test_storage_failure_leaves_previous_active(self, db_session, blob_store):
        service = QRCodeService(db_session, blob_store)
        first = service.upload(PNG_BYTES, "first.png", "image/png")
        blob_store.fail_uploads = True
        with pytest.raises(ExternalServiceError):
            service.upload(PNG_BYTES, "second.png", "image/png")
        assert service.get_active().id == first.id


class TestQRRoutes:
    def test_get_missing(self, client):
        res = client.get(f"{API}/qr")
        assert res.status_code == 404
        assert res.json() == {"success": False, "msg": "QR code not found"}

    def test_upload_and_get(self, client, auth_headers):
        files = {"image": ("qr.png", PNG_BYTES, "image/png")}
        assert client.post(f"{API}/qr/upload", files=files).status_code == 401

        res = client.post(f"{API}/qr/upload", files=files, headers=auth_headers)
        assert res.status_code == 201
        uploaded = res.json()["qrCode"]
        assert uploaded["image_url"].startswith("https://cdn.test/qr-codes/")

        res = client.get(f"{API}/qr")
        assert res.status_code == 200
        assert res.json()["qrCode"]["id"] == uploaded["id"]

    def test_upload_rejects_non_image(self, client, auth_headers):
        files = {"image": ("menu.pdf", b"%PDF-1.4", "application/pdf")}
        res = client.post(f"{API}/qr/upload", files=files, headers=auth_headers)
        assert res.status_code == 400

    def test_generate(self, client, auth_headers):
        res = client.post(
            f"{API}/qr/generate",
            json={"url": "https://menu.example.com", "format": "svg"},
            headers=auth_headers,
        )
        assert res.status_code == 201
        assert res.json()["qrCode"]["public_id"].endswith(".svg")
