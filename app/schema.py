# app/schema.py
"""
Declarative collection schemas backed by MongoDB.

A collection is described by its fields and access rules. Saving it creates
the MongoDB collection with a ``$jsonSchema`` validator built from the
fields, creates its indexes, and stores the schema document in
``_collections`` so later migrations can look it up by name or id.

Access rules are kept verbatim as metadata: ``None`` means superuser only,
an empty string means public.
"""
import zlib
from typing import Annotated, List, Literal, Optional, Union

from pydantic import BaseModel, Field as ModelField

from app.config import logger

COLLECTIONS_COLLECTION = "_collections"
USERS_COLLECTION_ID = "_pb_users_auth_"

NUMBER_BSON_TYPES = ["int", "long", "double", "decimal"]
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


class BaseField(BaseModel):
    name: str
    required: bool = False
    hidden: bool = False

    def json_schema(self) -> dict:
        return {}


class TextField(BaseField):
    type: Literal["text"] = "text"
    min: int = 0
    max: int = 0

    def json_schema(self) -> dict:
        schema = {"bsonType": "string"}
        if self.min > 0:
            schema["minLength"] = self.min
        if self.max > 0:
            schema["maxLength"] = self.max
        return schema


class EmailField(BaseField):
    type: Literal["email"] = "email"

    def json_schema(self) -> dict:
        return {"bsonType": "string", "pattern": EMAIL_PATTERN}


class SelectField(BaseField):
    type: Literal["select"] = "select"
    values: List[str] = []
    max_select: int = 1

    def json_schema(self) -> dict:
        if self.max_select <= 1:
            return {"bsonType": "string", "enum": list(self.values)}
        return {
            "bsonType": "array",
            "maxItems": self.max_select,
            "items": {"bsonType": "string", "enum": list(self.values)},
        }


class NumberField(BaseField):
    type: Literal["number"] = "number"
    min: Optional[float] = None
    max: Optional[float] = None
    only_int: bool = False

    def json_schema(self) -> dict:
        schema = {"bsonType": ["int", "long"] if self.only_int else list(NUMBER_BSON_TYPES)}
        if self.min is not None:
            schema["minimum"] = self.min
        if self.max is not None:
            schema["maximum"] = self.max
        return schema


class BoolField(BaseField):
    type: Literal["bool"] = "bool"

    def json_schema(self) -> dict:
        return {"bsonType": "bool"}


class RelationField(BaseField):
    type: Literal["relation"] = "relation"
    collection_id: str
    cascade_delete: bool = False
    max_select: int = 1

    def json_schema(self) -> dict:
        if self.max_select <= 1:
            return {"bsonType": "string"}
        return {"bsonType": "array", "maxItems": self.max_select, "items": {"bsonType": "string"}}


class JSONField(BaseField):
    type: Literal["json"] = "json"
    # Serialized size limit in bytes, enforced by the writer, not the validator
    max_size: int = 0


class AutodateField(BaseField):
    type: Literal["autodate"] = "autodate"
    on_create: bool = True
    on_update: bool = False

    def json_schema(self) -> dict:
        return {"bsonType": "date"}


AnyField = Annotated[
    Union[TextField, EmailField, SelectField, NumberField, BoolField, RelationField, JSONField, AutodateField],
    ModelField(discriminator="type"),
]


class Collection(BaseModel):
    id: str
    name: str
    type: Literal["base", "auth"] = "base"
    fields: List[AnyField] = []
    list_rule: Optional[str] = None
    view_rule: Optional[str] = None
    create_rule: Optional[str] = None
    update_rule: Optional[str] = None
    delete_rule: Optional[str] = None

    def add_field(self, field) -> None:
        """Adds a field, replacing any existing field with the same name."""
        self.fields = [f for f in self.fields if f.name != field.name] + [field]

    def get_field(self, name: str):
        for field in self.fields:
            if field.name == name:
                return field
        return None

    def to_json_schema(self) -> dict:
        properties = {field.name: field.json_schema() for field in self.fields}
        schema = {"bsonType": "object", "properties": properties}
        required = [field.name for field in self.fields if field.required]
        if required:
            schema["required"] = required
        return schema

    def index_specs(self) -> list:
        """Returns (field name, unique) pairs of the indexes this collection needs."""
        specs = []
        if self.type == "auth":
            specs.append(("email", True))
            specs.append(("token_key", True))
        for field in self.fields:
            if isinstance(field, RelationField):
                specs.append((field.name, False))
        return specs


def default_collection_id(name: str) -> str:
    return f"pbc_{zlib.crc32(name.encode('utf-8'))}"


def new_base_collection(name: str, id: Optional[str] = None) -> Collection:
    return Collection(id=id or default_collection_id(name), name=name, type="base")


def new_auth_collection(name: str, id: Optional[str] = None) -> Collection:
    """Creates an auth collection with the credential fields already in place."""
    collection = Collection(id=id or default_collection_id(name), name=name, type="auth")
    collection.add_field(EmailField(name="email", required=True))
    collection.add_field(BoolField(name="email_visibility"))
    collection.add_field(BoolField(name="verified"))
    collection.add_field(TextField(name="password_hash", required=True, hidden=True))
    collection.add_field(TextField(name="token_key", required=True, hidden=True, min=30, max=60))
    # Authenticated users may view and update only their own record
    collection.list_rule = "id = @request.auth.id"
    collection.view_rule = "id = @request.auth.id"
    collection.create_rule = ""
    collection.update_rule = "id = @request.auth.id"
    collection.delete_rule = "id = @request.auth.id"
    return collection


def save_collection(db, collection: Collection) -> None:
    """Creates or updates the MongoDB collection and stores its schema document."""
    validator = {"$jsonSchema": collection.to_json_schema()}
    if collection.name in db.list_collection_names():
        db.command("collMod", collection.name, validator=validator)
        logger.info(f"Collection '{collection.name}' validator updated.")
    else:
        db.create_collection(collection.name, validator=validator)
        logger.info(f"Collection '{collection.name}' created.")

    for field_name, unique in collection.index_specs():
        db[collection.name].create_index(field_name, unique=unique)

    document = collection.model_dump()
    document["_id"] = collection.id
    db[COLLECTIONS_COLLECTION].replace_one({"_id": collection.id}, document, upsert=True)


def find_collection_by_name_or_id(db, name_or_id: str) -> Optional[Collection]:
    schemas = db[COLLECTIONS_COLLECTION]
    document = schemas.find_one({"_id": name_or_id}) or schemas.find_one({"name": name_or_id})
    if document is None:
        return None
    document = dict(document)
    document.pop("_id", None)
    return Collection.model_validate(document)


def list_collections(db) -> list:
    """Returns every stored collection schema, sorted by name."""
    collections = []
    for document in db[COLLECTIONS_COLLECTION].find({}):
        document = dict(document)
        document.pop("_id", None)
        collections.append(Collection.model_validate(document))
    return sorted(collections, key=lambda collection: collection.name)


def delete_collection(db, collection: Collection) -> None:
    db.drop_collection(collection.name)
    db[COLLECTIONS_COLLECTION].delete_one({"_id": collection.id})
    logger.info(f"Collection '{collection.name}' deleted.")
