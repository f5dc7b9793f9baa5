# licensing/api/tenant_access/schemas.py
from marshmallow import Schema, fields


class GranteesUpdateSchema(Schema):
    """Full replacement set of role ids holding a tenant right"""

    role_ids = fields.List(fields.Str(), required=True)
