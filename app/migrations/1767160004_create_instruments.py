from app import schema
from app.migrations import MigrationError, register

OWNER_OR_PUBLIC = "@request.auth.id != '' && (userId = @request.auth.id || isPublic = true)"
OWNER_ONLY = "@request.auth.id != '' && userId = @request.auth.id"


def up(db):
    collection = schema.new_base_collection("instruments")

    collection.add_field(schema.RelationField(
        name="userId",
        required=True,
        collection_id=schema.USERS_COLLECTION_ID,
        cascade_delete=True,
        max_select=1,
    ))
    collection.add_field(schema.TextField(name="name", required=True, min=1, max=100))
    collection.add_field(schema.TextField(name="description", max=1000))
    collection.add_field(schema.JSONField(name="instrumentData", required=True, max_size=2000000))
    collection.add_field(schema.BoolField(name="isPublic"))
    collection.add_field(schema.JSONField(name="tags", max_size=10000))
    collection.add_field(schema.AutodateField(name="created", on_create=True, on_update=False))
    collection.add_field(schema.AutodateField(name="updated", on_create=True, on_update=True))

    collection.list_rule = OWNER_OR_PUBLIC
    collection.view_rule = OWNER_OR_PUBLIC
    collection.create_rule = "@request.auth.id != ''"
    collection.update_rule = OWNER_ONLY
    collection.delete_rule = OWNER_ONLY

    schema.save_collection(db, collection)


def down(db):
    collection = schema.find_collection_by_name_or_id(db, "instruments")
    if collection is None:
        raise MigrationError("Collection 'instruments' not found.")
    schema.delete_collection(db, collection)


register(__name__, up, down)
