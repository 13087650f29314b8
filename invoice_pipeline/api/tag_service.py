from invoice_pipeline.api.models import CreateTagInput, UpdateTagInput
from invoice_pipeline.database.models import TagRecord, TagUsageRecord
from invoice_pipeline.database.repositories.tag_repository import TagRepository
from invoice_pipeline.logging.logger import Log


class TagService:
    """Per-user tag management on the public API side."""

    def __init__(self, repository: TagRepository) -> None:
        self._repository = repository

    def create(self, tag_input: CreateTagInput, user_id: int) -> TagRecord:
        tag_input = tag_input.validated()
        tag = self._repository.create(
            user_id=user_id,
            name=tag_input.name,
            description=tag_input.description or "",
            colors=tag_input.colors or "",
        )
        Log.info(f"Created tag {tag.id} for user {user_id}")
        return tag

    def find_all(self, user_id: int) -> list[TagRecord]:
        return self._repository.list_for_user(user_id)

    def find_one(self, tag_id: int, user_id: int) -> TagRecord:
        return self._repository.find_for_user(tag_id, user_id)

    def update(self, tag_id: int, tag_input: UpdateTagInput, user_id: int) -> TagRecord:
        """Apply the non-None fields of ``tag_input`` to a tag the user owns.

        Raises:
            TagNotFoundError: if the tag does not exist or belongs to someone else.
            InvalidInputError: if a provided name is blank.
        """
        current = self._repository.find_for_user(tag_id, user_id)
        tag_input = tag_input.validated()
        tag = self._repository.update(
            tag_id,
            name=tag_input.name if tag_input.name is not None else current.name,
            description=(
                tag_input.description
                if tag_input.description is not None
                else current.description
            ),
            colors=tag_input.colors if tag_input.colors is not None else current.colors,
        )
        Log.info(f"Updated tag {tag_id} for user {user_id}")
        return tag

    def remove(self, tag_id: int, user_id: int) -> None:
        """Delete a tag the user owns along with its invoice links."""
        self._repository.find_for_user(tag_id, user_id)
        self._repository.delete(tag_id)
        Log.info(f"Deleted tag {tag_id} for user {user_id}")

    def get_tags_usage_stats(self, user_id: int) -> list[TagUsageRecord]:
        return self._repository.usage_stats(user_id)
