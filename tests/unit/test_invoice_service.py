from datetime import datetime, timezone
from typing import Any
from unittest.mock import MagicMock

import pytest

from invoice_pipeline.api.invoice_service import InvoiceService
from invoice_pipeline.api.models import (
    CreateInvoiceInput,
    UpdateInvoiceInput,
    UploadedFile,
    parse_tag_ids,
)
from invoice_pipeline.workflow.exceptions import InvalidInputError, InvoiceNotFoundError
from invoice_pipeline.workflow.messages import PROCESS_INVOICE, ProcessInvoiceMessage

_DATE = datetime(2025, 6, 17, tzinfo=timezone.utc)


def _make_service(
    memory_repo: Any, max_upload_bytes: int = 1024
) -> tuple[InvoiceService, MagicMock, MagicMock]:
    blob_store = MagicMock()
    blob_store.put.return_value = "s3://invoice-files/invoices/1/abc.pdf"
    publisher = MagicMock()
    service = InvoiceService(memory_repo, blob_store, publisher, max_upload_bytes)
    return service, blob_store, publisher


def _input(**overrides: object) -> CreateInvoiceInput:
    fields: dict = {"name": "EDF June", "date": _DATE, "type": "RECEIVED", "tag_ids": None}
    fields.update(overrides)
    return CreateInvoiceInput(**fields)


def _pdf(content: bytes = b"%PDF-1.4 body") -> UploadedFile:
    return UploadedFile(file_name="edf.pdf", content=content, content_type="application/pdf")


class TestCreateInvoice:
    def test_returns_processing_invoice(self, memory_repo: Any) -> None:
        service, _blob, _pub = _make_service(memory_repo)

        invoice = service.create_invoice(_input(), 1, _pdf())

        assert invoice.status == "PROCESSING"
        assert invoice.file_path == "s3://invoice-files/invoices/1/abc.pdf"
        assert memory_repo.invoices[invoice.id].status == "PROCESSING"

    def test_status_passes_through_uploaded(self, memory_repo: Any) -> None:
        service, _blob, _pub = _make_service(memory_repo)

        invoice = service.create_invoice(_input(), 1, _pdf())

        assert memory_repo.status_history == [(invoice.id, "UPLOADED"), (invoice.id, "PROCESSING")]

    def test_stores_blob_under_user_prefix(self, memory_repo: Any) -> None:
        service, blob_store, _pub = _make_service(memory_repo)

        service.create_invoice(_input(), 7, _pdf())

        data, key, content_type = blob_store.put.call_args.args
        assert data == b"%PDF-1.4 body"
        assert key.startswith("invoices/7/")
        assert key.endswith(".pdf")
        assert content_type == "application/pdf"

    def test_publishes_process_invoice(self, memory_repo: Any) -> None:
        service, _blob, publisher = _make_service(memory_repo)

        invoice = service.create_invoice(_input(), 1, _pdf())

        topic, payload = publisher.publish.call_args.args
        assert topic == PROCESS_INVOICE
        message = ProcessInvoiceMessage.from_payload(payload)
        assert message.invoice_id == invoice.id
        assert message.file_name == "edf.pdf"
        assert message.file_bytes() == b"%PDF-1.4 body"

    def test_normalizes_type_and_tags(self, memory_repo: Any) -> None:
        service, _blob, _pub = _make_service(memory_repo)

        invoice = service.create_invoice(_input(type="issued", tag_ids="[1, 2]"), 1, _pdf())

        assert invoice.type == "ISSUED"
        assert invoice.tag_ids == [1, 2]

    def test_missing_file_rejected_before_any_side_effect(self, memory_repo: Any) -> None:
        service, blob_store, publisher = _make_service(memory_repo)

        with pytest.raises(InvalidInputError, match="File is required"):
            service.create_invoice(_input(), 1, None)

        blob_store.put.assert_not_called()
        publisher.publish.assert_not_called()
        assert memory_repo.invoices == {}

    def test_empty_file_rejected(self, memory_repo: Any) -> None:
        service, _blob, _pub = _make_service(memory_repo)

        with pytest.raises(InvalidInputError, match="File is required"):
            service.create_invoice(_input(), 1, _pdf(b""))

    def test_oversized_file_rejected(self, memory_repo: Any) -> None:
        service, _blob, _pub = _make_service(memory_repo, max_upload_bytes=4)

        with pytest.raises(InvalidInputError, match="upload limit"):
            service.create_invoice(_input(), 1, _pdf())

    def test_disallowed_mime_rejected(self, memory_repo: Any) -> None:
        service, _blob, _pub = _make_service(memory_repo)
        upload = UploadedFile(file_name="a.exe", content=b"MZ", content_type="application/x-msdownload")

        with pytest.raises(InvalidInputError, match="not allowed"):
            service.create_invoice(_input(), 1, upload)

    def test_unknown_type_rejected(self, memory_repo: Any) -> None:
        service, blob_store, _pub = _make_service(memory_repo)

        with pytest.raises(InvalidInputError, match="Unknown invoice type"):
            service.create_invoice(_input(type="BOTH"), 1, _pdf())
        blob_store.put.assert_not_called()

    def test_blank_name_rejected(self, memory_repo: Any) -> None:
        service, _blob, _pub = _make_service(memory_repo)

        with pytest.raises(InvalidInputError, match="name"):
            service.create_invoice(_input(name="   "), 1, _pdf())


class TestQueries:
    def test_find_all_paginates(self, memory_repo: Any) -> None:
        for invoice_id in range(1, 6):
            memory_repo.seed(invoice_id, "COMPLETED")
        service, _blob, _pub = _make_service(memory_repo)

        page = service.find_all(1, page=2, limit=2)

        assert page.total == 5
        assert page.total_pages == 3
        assert [i.id for i in page.invoices] == [3, 2]

    def test_find_all_rejects_bad_page(self, memory_repo: Any) -> None:
        service, _blob, _pub = _make_service(memory_repo)

        with pytest.raises(InvalidInputError):
            service.find_all(1, page=0)

    def test_find_one_hides_other_users(self, memory_repo: Any) -> None:
        memory_repo.seed(1, "COMPLETED", user_id=2)
        service, _blob, _pub = _make_service(memory_repo)

        with pytest.raises(InvoiceNotFoundError):
            service.find_one(1, 1)

    def test_find_by_status_is_case_insensitive(self, memory_repo: Any) -> None:
        memory_repo.seed(1, "ERROR")
        memory_repo.seed(2, "COMPLETED")
        service, _blob, _pub = _make_service(memory_repo)

        assert [i.id for i in service.find_by_status(1, "error")] == [1]

    def test_find_by_unknown_status_raises(self, memory_repo: Any) -> None:
        service, _blob, _pub = _make_service(memory_repo)

        with pytest.raises(InvalidInputError, match="Unknown invoice status"):
            service.find_by_status(1, "ARCHIVED")

    def test_processing_status(self, memory_repo: Any) -> None:
        memory_repo.seed(1, "PROCESSING")
        memory_repo.seed(2, "COMPLETED")
        service, _blob, _pub = _make_service(memory_repo)

        status = service.get_processing_status(1)

        assert status.count == 1
        assert status.has_processing is True

    def test_processing_status_when_idle(self, memory_repo: Any) -> None:
        service, _blob, _pub = _make_service(memory_repo)

        assert service.get_processing_status(1).has_processing is False

    def test_status_summary(self, memory_repo: Any) -> None:
        memory_repo.seed(1, "PROCESSING")
        memory_repo.seed(2, "COMPLETED")
        memory_repo.seed(3, "COMPLETED")
        memory_repo.seed(4, "ERROR")
        service, _blob, _pub = _make_service(memory_repo)

        summary = service.get_status_summary(1)

        assert summary.total == 4
        assert summary.uploaded == 0
        assert summary.processing == 1
        assert summary.completed == 2
        assert summary.error == 1


class TestRemove:
    def test_deletes_blob_and_row(self, memory_repo: Any) -> None:
        record = memory_repo.seed(1, "COMPLETED")
        service, blob_store, _pub = _make_service(memory_repo)

        service.remove(1, 1)

        blob_store.delete.assert_called_once_with(record.file_path)
        assert 1 not in memory_repo.invoices

    def test_other_user_cannot_remove(self, memory_repo: Any) -> None:
        memory_repo.seed(1, "COMPLETED", user_id=2)
        service, blob_store, _pub = _make_service(memory_repo)

        with pytest.raises(InvoiceNotFoundError):
            service.remove(1, 1)
        blob_store.delete.assert_not_called()


class TestUpdate:
    def test_changes_fields_and_keeps_the_rest(self, memory_repo: Any) -> None:
        record = memory_repo.seed(1, "COMPLETED")
        service, blob_store, publisher = _make_service(memory_repo)

        updated = service.update(1, UpdateInvoiceInput(name=" EDF July ", type="issued"), 1)

        assert updated.name == "EDF July"
        assert updated.type == "ISSUED"
        assert updated.date == record.date
        assert updated.file_path == record.file_path
        assert updated.status == "COMPLETED"
        blob_store.put.assert_not_called()
        blob_store.delete.assert_not_called()
        publisher.publish.assert_not_called()

    def test_replacing_file_stores_new_blob_then_deletes_old(self, memory_repo: Any) -> None:
        record = memory_repo.seed(1, "COMPLETED")
        service, blob_store, _pub = _make_service(memory_repo)
        calls = MagicMock()
        calls.attach_mock(blob_store.put, "put")
        calls.attach_mock(blob_store.delete, "delete")

        updated = service.update(1, UpdateInvoiceInput(), 1, _pdf(b"%PDF-1.7 new"))

        assert updated.file_path == "s3://invoice-files/invoices/1/abc.pdf"
        assert [c[0] for c in calls.mock_calls] == ["put", "delete"]
        data, key, _content_type = blob_store.put.call_args.args
        assert data == b"%PDF-1.7 new"
        assert key.startswith("invoices/1/")
        blob_store.delete.assert_called_once_with(record.file_path)

    def test_invalid_replacement_file_leaves_invoice_untouched(self, memory_repo: Any) -> None:
        record = memory_repo.seed(1, "COMPLETED")
        service, blob_store, _pub = _make_service(memory_repo, max_upload_bytes=4)

        with pytest.raises(InvalidInputError, match="upload limit"):
            service.update(1, UpdateInvoiceInput(name="New"), 1, _pdf())

        assert memory_repo.find_by_id(1) == record
        blob_store.put.assert_not_called()
        blob_store.delete.assert_not_called()

    def test_replaces_tags_only_when_given(self, memory_repo: Any) -> None:
        memory_repo.seed(1, "COMPLETED")
        service, _blob, _pub = _make_service(memory_repo)

        service.update(1, UpdateInvoiceInput(tag_ids="4,2,4"), 1)
        assert memory_repo.find_by_id(1).tag_ids == [4, 2]

        service.update(1, UpdateInvoiceInput(name="Renamed", tag_ids=""), 1)
        assert memory_repo.find_by_id(1).tag_ids == [4, 2]

    def test_other_user_cannot_update(self, memory_repo: Any) -> None:
        memory_repo.seed(1, "COMPLETED", user_id=2)
        service, blob_store, _pub = _make_service(memory_repo)

        with pytest.raises(InvoiceNotFoundError):
            service.update(1, UpdateInvoiceInput(name="Mine"), 1, _pdf())
        blob_store.put.assert_not_called()

    def test_blank_name_rejected(self, memory_repo: Any) -> None:
        memory_repo.seed(1, "COMPLETED")
        service, _blob, _pub = _make_service(memory_repo)

        with pytest.raises(InvalidInputError, match="name"):
            service.update(1, UpdateInvoiceInput(name="  "), 1)


class TestTagOwnership:
    def _service(self, memory_repo: Any, owned: int) -> tuple[InvoiceService, MagicMock]:
        tag_repository = MagicMock()
        tag_repository.count_owned.return_value = owned
        blob_store = MagicMock()
        blob_store.put.return_value = "s3://invoice-files/invoices/1/abc.pdf"
        service = InvoiceService(
            memory_repo, blob_store, MagicMock(), tag_repository=tag_repository
        )
        return service, tag_repository

    def test_create_accepts_owned_tags(self, memory_repo: Any) -> None:
        service, tag_repository = self._service(memory_repo, owned=2)

        invoice = service.create_invoice(_input(tag_ids=[3, 5, 3]), 1, _pdf())

        tag_repository.count_owned.assert_called_once_with([3, 5], 1)
        assert invoice.tag_ids == [3, 5]

    def test_create_rejects_foreign_tags_before_storing(self, memory_repo: Any) -> None:
        service, _tags = self._service(memory_repo, owned=1)

        with pytest.raises(InvalidInputError, match="Unknown tag ids"):
            service.create_invoice(_input(tag_ids=[3, 5]), 1, _pdf())
        assert memory_repo.invoices == {}

    def test_update_rejects_foreign_tags(self, memory_repo: Any) -> None:
        memory_repo.seed(1, "COMPLETED")
        service, _tags = self._service(memory_repo, owned=0)

        with pytest.raises(InvalidInputError, match="Unknown tag ids"):
            service.update(1, UpdateInvoiceInput(tag_ids=[9]), 1)
        assert memory_repo.find_by_id(1).tag_ids == []

    def test_no_tags_skips_lookup(self, memory_repo: Any) -> None:
        service, tag_repository = self._service(memory_repo, owned=0)

        service.create_invoice(_input(), 1, _pdf())

        tag_repository.count_owned.assert_not_called()


class TestParseTagIds:
    @pytest.mark.parametrize(
        ("raw", "expected"),
        [
            (None, []),
            ([1, 2], [1, 2]),
            ("[3, 4]", [3, 4]),
            ("5, 6,x", [5, 6]),
            ("", []),
        ],
    )
    def test_accepts_supported_shapes(self, raw: object, expected: list[int]) -> None:
        assert parse_tag_ids(raw) == expected  # type: ignore[arg-type]
