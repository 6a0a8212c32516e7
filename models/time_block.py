from datetime import datetime, timezone
from enum import Enum

from tortoise import fields
from tortoise.models import Model


class SourceType(Enum):
    AUTO = "auto"
    MANUAL = "manual"
    APPROVED = "approved"
    EXCLUDED = "excluded"


class TimeBlock(Model):
    """A scheduled freedom block.

    ``source_type`` has no default: every block is built through one of the
    classmethods below so its classification is always explicit.
    """

    id = fields.IntField(primary_key=True)
    user = fields.ForeignKeyField("models.User", null=True, related_name="time_blocks")
    start_time = fields.DatetimeField()
    end_time = fields.DatetimeField()
    approved = fields.BooleanField(default=False)
    source_type = fields.CharEnumField(enum_type=SourceType, max_length=10)
    deleted_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "freedom_time_blocks"
        ordering = ["start_time"]

    @classmethod
    def auto(cls, start_time: datetime, end_time: datetime, user=None) -> "TimeBlock":
        return cls(user=user, start_time=start_time, end_time=end_time, approved=False, source_type=SourceType.AUTO)

    @classmethod
    def manual(cls, start_time: datetime, end_time: datetime, user=None) -> "TimeBlock":
        return cls(user=user, start_time=start_time, end_time=end_time, approved=False, source_type=SourceType.MANUAL)

    @classmethod
    def approved_block(cls, start_time: datetime, end_time: datetime, user=None) -> "TimeBlock":
        return cls(user=user, start_time=start_time, end_time=end_time, approved=True, source_type=SourceType.APPROVED)

    @classmethod
    def excluded(cls, start_time: datetime, end_time: datetime, user=None, deleted_at: datetime = None) -> "TimeBlock":
        return cls(
            user=user,
            start_time=start_time,
            end_time=end_time,
            approved=False,
            source_type=SourceType.EXCLUDED,
            deleted_at=deleted_at or datetime.now(timezone.utc),
        )

    @property
    def is_excluded(self) -> bool:
        return self.source_type == SourceType.EXCLUDED

    def to_dict(self) -> dict:
        return {
            "id": self.id,
            "startTime": self.start_time.isoformat() if self.start_time else None,
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "approved": self.approved,
            "sourceType": self.source_type.value,
            "deletedAt": self.deleted_at.isoformat() if self.deleted_at else None,
            "createdAt": self.created_at.isoformat() if self.created_at else None,
            "updatedAt": self.updated_at.isoformat() if self.updated_at else None,
        }
