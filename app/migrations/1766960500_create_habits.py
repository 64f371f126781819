from app import schema
from app.migrations import MigrationError, register


def up(db):
    collection = schema.new_base_collection("habits")

    collection.add_field(schema.TextField(name="name", required=True, min=1, max=255))
    collection.add_field(schema.TextField(name="description"))
    collection.add_field(schema.SelectField(name="type", required=True, values=["good", "bad"]))
    collection.add_field(schema.NumberField(name="points"))
    collection.add_field(schema.RelationField(
        name="userId",
        required=True,
        collection_id=schema.USERS_COLLECTION_ID,
        cascade_delete=True,
    ))

    collection.list_rule = "userId = @request.auth.id"
    collection.view_rule = "userId = @request.auth.id"
    collection.create_rule = '@request.auth.id != ""'
    collection.update_rule = "userId = @request.auth.id"
    collection.delete_rule = "userId = @request.auth.id"

    schema.save_collection(db, collection)


def down(db):
    collection = schema.find_collection_by_name_or_id(db, "habits")
    if collection is None:
        raise MigrationError("Collection 'habits' not found.")
    schema.delete_collection(db, collection)


register(__name__, up, down)
