# licensing/api/plans/schemas.py
from datetime import timezone

from marshmallow import Schema, fields, validate

from licensing.core.constants import GrantSource


class PlanAssignSchema(Schema):
    plan_id = fields.Str(required=True)
    notes = fields.Str(allow_none=True, load_default=None)


class CapabilityGrantSchema(Schema):
    """Grant outside the plan, e.g. a trial"""

    capability_id = fields.Str(required=True)
    grant_source = fields.Str(
        load_default=GrantSource.TRIAL.value,
        validate=validate.OneOf([source.value for source in GrantSource]),
    )
    source_reference = fields.Str(allow_none=True, load_default=None)
    # Stored naive, in UTC
    expires_at = fields.NaiveDateTime(timezone=timezone.utc, allow_none=True, load_default=None)
