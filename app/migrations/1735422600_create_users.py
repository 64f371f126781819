from app import schema
from app.migrations import register


def up(db):
    # The users collection may already exist on databases created before migrations
    if schema.find_collection_by_name_or_id(db, schema.USERS_COLLECTION_ID) is not None:
        return

    collection = schema.new_auth_collection("users", id=schema.USERS_COLLECTION_ID)
    collection.add_field(schema.TextField(name="name", max=255))
    schema.save_collection(db, collection)


def down(db):
    collection = schema.find_collection_by_name_or_id(db, schema.USERS_COLLECTION_ID)
    if collection is None:
        return
    schema.delete_collection(db, collection)


register(__name__, up, down)
