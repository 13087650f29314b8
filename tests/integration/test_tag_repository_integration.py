from datetime import datetime, timezone

import pytest

from invoice_pipeline.database.models import InvoiceRecord
from invoice_pipeline.database.repositories.invoice_repository import InvoiceRepository
from invoice_pipeline.database.repositories.tag_repository import TagRepository
from invoice_pipeline.workflow.exceptions import TagNotFoundError

INTEGRATION_USER_ID = 990001


@pytest.mark.integration
class TestTagLifecycle:
    def test_created_tag_can_be_linked_to_an_invoice(
        self, repository: InvoiceRepository, tag_repository: TagRepository
    ) -> None:
        tag = tag_repository.create(
            user_id=INTEGRATION_USER_ID, name="Energy", description="", colors="#3B82F6"
        )

        invoice = repository.create(
            user_id=INTEGRATION_USER_ID,
            name="Tagged",
            date=datetime(2025, 6, 1, tzinfo=timezone.utc),
            type="RECEIVED",
            file_path="s3://invoice-files/invoices/990001/tagged.pdf",
            tag_ids=[tag.id],
        )

        assert repository.find_by_id(invoice.id).tag_ids == [tag.id]
        assert tag_repository.count_owned([tag.id], INTEGRATION_USER_ID) == 1
        assert tag_repository.count_owned([tag.id], INTEGRATION_USER_ID + 1) == 0

    def test_usage_stats_and_delete(
        self,
        repository: InvoiceRepository,
        tag_repository: TagRepository,
        seed_invoice: InvoiceRecord,
    ) -> None:
        used = tag_repository.create(
            user_id=INTEGRATION_USER_ID, name="Used", description="", colors="#3B82F6"
        )
        unused = tag_repository.create(
            user_id=INTEGRATION_USER_ID, name="Unused", description="", colors="#3B82F6"
        )
        repository.update(
            seed_invoice.id,
            name=seed_invoice.name,
            date=seed_invoice.date,
            type=seed_invoice.type,
            file_path=seed_invoice.file_path,
            tag_ids=[used.id],
        )

        stats = {s.tag.id: s.usage_count for s in tag_repository.usage_stats(INTEGRATION_USER_ID)}
        assert stats == {used.id: 1, unused.id: 0}

        tag_repository.delete(used.id)

        assert repository.find_by_id(seed_invoice.id).tag_ids == []
        with pytest.raises(TagNotFoundError):
            tag_repository.find_for_user(used.id, INTEGRATION_USER_ID)

    def test_update_overwrites_fields(self, tag_repository: TagRepository) -> None:
        tag = tag_repository.create(
            user_id=INTEGRATION_USER_ID, name="Rent", description="", colors="#3B82F6"
        )

        updated = tag_repository.update(
            tag.id, name="Rent 2025", description="Flat", colors="#EF4444"
        )

        assert updated.name == "Rent 2025"
        assert tag_repository.find_for_user(tag.id, INTEGRATION_USER_ID) == updated


@pytest.mark.integration
class TestInvoiceUpdate:
    def test_replaces_fields_and_tags(
        self,
        repository: InvoiceRepository,
        seed_invoice: InvoiceRecord,
        seed_tag: int,
    ) -> None:
        repository.update(
            seed_invoice.id,
            name="EDF July",
            date=datetime(2025, 7, 1, tzinfo=timezone.utc),
            type="ISSUED",
            file_path="s3://invoice-files/invoices/990001/new.pdf",
            tag_ids=[seed_tag],
        )

        found = repository.find_by_id(seed_invoice.id)
        assert found.name == "EDF July"
        assert found.type == "ISSUED"
        assert found.file_path == "s3://invoice-files/invoices/990001/new.pdf"
        assert found.tag_ids == [seed_tag]
        assert found.status == "UPLOADED"
