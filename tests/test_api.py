"""Tests for the FastAPI REST endpoints."""

from pathlib import Path
from unittest.mock import MagicMock, patch

import pytest
from fastapi.testclient import TestClient

from lumen_extract.api.app import app
from lumen_extract.errors import CorruptDocument
from lumen_extract.extraction.rule_extractor import ExtractedField
from lumen_extract.ocr.document_processor import DocumentResult, PageResult, aggregate_pages
from lumen_extract.preprocessing.raster import RasterImage
from lumen_extract.storage.history import HistoryStore


@pytest.fixture
def client() -> TestClient:
    """Create a FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def history_store(tmp_path: Path) -> HistoryStore:
    return HistoryStore(tmp_path / "history.json")


def _make_mock_doc_result(filename: str = "test.png") -> DocumentResult:
    """Create a two-page DocumentResult with a failed second page."""
    return aggregate_pages(
        [
            PageResult(
                page_number=1,
                text="Invoice #001\nTotal: $500.00",
                confidence=90.0,
                fields=[
                    ExtractedField("Invoice Number", "001", 90),
                    ExtractedField("Total Amount", "$500.00", 95),
                ],
            ),
            PageResult(page_number=2, error="Tesseract recognition failed"),
        ],
        filename,
        is_pdf=True,
    )


def _mock_processor(*outcomes) -> MagicMock:
    processor = MagicMock()
    processor.process.side_effect = list(outcomes)
    return processor


class TestHealthEndpoint:
    """Tests for the /health endpoint."""

    def test_health_returns_ok(self, client: TestClient) -> None:
        response = client.get("/health")
        assert response.status_code == 200
        data = response.json()
        assert data["status"] == "healthy"
        assert data["version"] == "1.0.0"
        assert isinstance(data["tesseract_available"], bool)
        assert isinstance(data["poppler_available"], bool)


class TestExtractEndpoint:
    """Tests for the /extract endpoint."""

    @patch("lumen_extract.api.app._get_components")
    def test_extract_success(
        self,
        mock_components: MagicMock,
        client: TestClient,
        history_store: HistoryStore,
    ) -> None:
        mock_components.return_value = (
            _mock_processor(_make_mock_doc_result()),
            history_store,
        )

        response = client.post(
            "/extract",
            files={"file": ("test.pdf", b"%PDF-1.4", "application/pdf")},
        )
        assert response.status_code == 200
        data = response.json()
        assert data["success"] is True
        assert data["page_count"] == 2
        assert data["overall_confidence"] == pytest.approx(45.0)
        assert data["fields"][0] == {
            "label": "Invoice Number",
            "value": "001",
            "confidence": 90,
        }
        assert data["page_errors"] == {"2": "Tesseract recognition failed"}
        assert "=== Page 2 - Processing Error ===" in data["raw_text"]

    @patch("lumen_extract.api.app._get_components")
    def test_extract_saves_history(
        self,
        mock_components: MagicMock,
        client: TestClient,
        history_store: HistoryStore,
        sample_png_bytes: bytes,
    ) -> None:
        mock_components.return_value = (
            _mock_processor(_make_mock_doc_result()),
            history_store,
        )
        response = client.post(
            "/extract",
            files={"file": ("test.png", sample_png_bytes, "image/png")},
        )
        records = history_store.list()
        assert len(records) == 1
        assert records[0].id == response.json()["document_id"]
        assert records[0].file_type == "image/png"

    def test_extract_unsupported_file_type(self, client: TestClient) -> None:
        response = client.post(
            "/extract",
            files={"file": ("test.txt", b"plain text", "text/plain")},
        )
        assert response.status_code == 400

    @patch("lumen_extract.api.app._get_components")
    def test_extract_rasterization_error(
        self,
        mock_components: MagicMock,
        client: TestClient,
        history_store: HistoryStore,
    ) -> None:
        mock_components.return_value = (
            _mock_processor(CorruptDocument("Couldn't find trailer")),
            history_store,
        )
        response = client.post(
            "/extract",
            files={"file": ("bad.pdf", b"%PDF-garbage", "application/pdf")},
        )
        assert response.status_code == 422
        assert response.json()["detail"] == CorruptDocument.user_message
        assert history_store.list() == []

    @patch("lumen_extract.api.app._get_components")
    def test_extract_processing_error(
        self,
        mock_components: MagicMock,
        client: TestClient,
        history_store: HistoryStore,
        sample_png_bytes: bytes,
    ) -> None:
        mock_components.return_value = (
            _mock_processor(RuntimeError("OCR failed")),
            history_store,
        )
        response = client.post(
            "/extract",
            files={"file": ("test.png", sample_png_bytes, "image/png")},
        )
        assert response.status_code == 500

    @patch("lumen_extract.api.app._get_components")
    def test_extract_response_schema(
        self,
        mock_components: MagicMock,
        client: TestClient,
        history_store: HistoryStore,
        sample_png_bytes: bytes,
    ) -> None:
        mock_components.return_value = (
            _mock_processor(_make_mock_doc_result()),
            history_store,
        )
        response = client.post(
            "/extract",
            files={"file": ("test.png", sample_png_bytes, "image/png")},
        )
        data = response.json()
        for key in (
            "document_id",
            "filename",
            "fields",
            "raw_text",
            "overall_confidence",
            "processing_time_ms",
            "pages",
        ):
            assert key in data
        assert data["pages"][1]["error"] == "Tesseract recognition failed"


class TestBatchExtractEndpoint:
    """Tests for the /extract/batch endpoint."""

    @patch("lumen_extract.api.app._get_components")
    def test_batch_extract(
        self,
        mock_components: MagicMock,
        client: TestClient,
        history_store: HistoryStore,
        sample_png_bytes: bytes,
    ) -> None:
        processor = _mock_processor(
            _make_mock_doc_result("doc1.png"), _make_mock_doc_result("doc2.png")
        )
        mock_components.return_value = (processor, history_store)

        response = client.post(
            "/extract/batch",
            files=[
                ("files", ("doc1.png", sample_png_bytes, "image/png")),
                ("files", ("doc2.png", sample_png_bytes, "image/png")),
            ],
        )
        assert response.status_code == 200
        data = response.json()
        assert data["total_documents"] == 2
        assert data["successful"] == 2
        assert data["failed"] == 0
        assert len(history_store.list()) == 2

    @patch("lumen_extract.api.app._get_components")
    def test_batch_with_failure(
        self,
        mock_components: MagicMock,
        client: TestClient,
        history_store: HistoryStore,
        sample_png_bytes: bytes,
    ) -> None:
        processor = _mock_processor(
            _make_mock_doc_result(), CorruptDocument("no trailer")
        )
        mock_components.return_value = (processor, history_store)

        response = client.post(
            "/extract/batch",
            files=[
                ("files", ("doc1.png", sample_png_bytes, "image/png")),
                ("files", ("doc2.pdf", b"%PDF", "application/pdf")),
            ],
        )
        data = response.json()
        assert data["success"] is True
        assert data["successful"] == 1
        assert data["failed"] == 1
        assert data["results"][1]["error"] == CorruptDocument.user_message


class TestHistoryEndpoints:
    """Tests for the /history endpoints."""

    @patch("lumen_extract.api.app._get_components")
    @patch("lumen_extract.api.app._get_history_store")
    def test_list_delete_and_clear(
        self,
        mock_store: MagicMock,
        mock_components: MagicMock,
        client: TestClient,
        history_store: HistoryStore,
        sample_png_bytes: bytes,
    ) -> None:
        mock_store.return_value = history_store
        mock_components.return_value = (
            _mock_processor(_make_mock_doc_result("a.png"), _make_mock_doc_result("b.png")),
            history_store,
        )
        for name in ("a.png", "b.png"):
            client.post("/extract", files={"file": (name, sample_png_bytes, "image/png")})

        listing = client.get("/history").json()
        assert listing["total"] == 2
        assert [d["fileName"] for d in listing["documents"]] == ["b.png", "a.png"]

        newest_id = listing["documents"][0]["id"]
        assert client.delete(f"/history/{newest_id}").json() == {"deleted": 1}
        assert client.get("/history").json()["total"] == 1

        assert client.delete("/history").json() == {"deleted": 1}
        assert client.get("/history").json()["documents"] == []

    @patch("lumen_extract.api.app._get_history_store")
    def test_delete_unknown_id(
        self, mock_store: MagicMock, client: TestClient, history_store: HistoryStore
    ) -> None:
        mock_store.return_value = history_store
        assert client.delete("/history/missing").status_code == 404

    @patch("lumen_extract.api.app._get_components")
    @patch("lumen_extract.api.app._get_history_store")
    def test_search_history(
        self,
        mock_store: MagicMock,
        mock_components: MagicMock,
        client: TestClient,
        history_store: HistoryStore,
        sample_png_bytes: bytes,
    ) -> None:
        mock_store.return_value = history_store
        mock_components.return_value = (
            _mock_processor(
                _make_mock_doc_result("march-invoice.png"),
                _make_mock_doc_result("receipt.png"),
            ),
            history_store,
        )
        for name in ("march-invoice.png", "receipt.png"):
            client.post("/extract", files={"file": (name, sample_png_bytes, "image/png")})

        by_name = client.get("/history", params={"q": "MARCH"}).json()
        assert by_name["total"] == 1
        assert by_name["documents"][0]["fileName"] == "march-invoice.png"

        by_text = client.get("/history", params={"q": "invoice #001"}).json()
        assert by_text["total"] == 2

        assert client.get("/history", params={"q": "nowhere"}).json()["total"] == 0


class TestHistoryImages:
    """Tests for image payloads on saved history records."""

    @patch("lumen_extract.api.app._get_components")
    def test_images_kept_when_store_keeps_them(
        self,
        mock_components: MagicMock,
        client: TestClient,
        tmp_path: Path,
        sample_image: RasterImage,
        sample_png_bytes: bytes,
    ) -> None:
        store = HistoryStore(tmp_path / "history.json", keep_image_data=True)
        doc_result = aggregate_pages(
            [
                PageResult(
                    page_number=1,
                    text="Invoice #001",
                    confidence=90.0,
                    image=sample_image,
                    enhanced_image=sample_image,
                )
            ],
            "scan.png",
            is_pdf=False,
        )
        mock_components.return_value = (_mock_processor(doc_result), store)

        client.post("/extract", files={"file": ("scan.png", sample_png_bytes, "image/png")})

        record = store.list()[0]
        assert record.image_data.startswith("data:image/png;base64,")
        assert record.enhanced_image_data.startswith("data:image/png;base64,")
