from tortoise import fields
from tortoise.models import Model


class UserEmail(Model):
    id = fields.IntField(primary_key=True)
    email = fields.CharField(max_length=255, unique=True)
    is_calendar_onboarded = fields.BooleanField(default=False)
    user = fields.ForeignKeyField("models.User", null=True, related_name="emails")
    deleted_at = fields.DatetimeField(null=True)
    created_at = fields.DatetimeField(auto_now_add=True)
    updated_at = fields.DatetimeField(auto_now=True)

    class Meta:
        table = "user_emails"


async def verified_calendar_ids(user) -> list:
    emails = await UserEmail.filter(user=user, deleted_at=None, is_calendar_onboarded=True).order_by("id")
    return [e.email for e in emails]
