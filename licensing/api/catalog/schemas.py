# licensing/api/catalog/schemas.py
from marshmallow import Schema, fields


class GranteeTemplateSchema(Schema):
    role_key = fields.Str(required=True)
    is_recommended = fields.Bool(load_default=True)
    reason = fields.Str(allow_none=True, load_default=None)


class RightCreateSchema(Schema):
    right_code = fields.Str(required=True)
    display_name = fields.Str()
    description = fields.Str(allow_none=True)
    is_required = fields.Bool(load_default=False)
    display_order = fields.Int()
    grantee_templates = fields.List(fields.Nested(GranteeTemplateSchema), load_default=list)


class CapabilityRightsCreateSchema(Schema):
    """Payload for defining the rights of one capability"""

    rights = fields.List(fields.Nested(RightCreateSchema), required=True)


class RightSetValidateSchema(Schema):
    # Plain codes or right objects; shape checks happen in the validator
    rights = fields.List(fields.Raw(), required=True)


class RightUpdateSchema(Schema):
    right_code = fields.Str()
    display_name = fields.Str()
    description = fields.Str(allow_none=True)
    is_required = fields.Bool()
    display_order = fields.Int()


class TemplatesReplaceSchema(Schema):
    templates = fields.List(fields.Nested(GranteeTemplateSchema), required=True)
