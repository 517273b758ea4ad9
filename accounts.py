"""
Account store: registration, login and profile lookups.

All queries are scoped by tenant (adminObjectId). An email is unique only
inside its tenant.
"""
import logging
from typing import Optional

from bson import ObjectId
from pymongo.database import Database
from pymongo.errors import DuplicateKeyError

import config
from auth import Identity, hash_password, issue_token, verify_password
from database import ACCOUNTS, create_document, now, oid
from errors import DuplicateAccount, InvalidCredentials, NotFound, ValidationError
from schemas import Account, CheckRequest, CreateUserRequest, LoginRequest, RegisterRequest

logger = logging.getLogger(__name__)


def tenant_oid(admin_object_id: Optional[str]) -> ObjectId:
    return oid(admin_object_id, "Invalid adminObjectId")


def normalize_email(email: str) -> str:
    return email.strip().lower()


def find_account(database: Database, tenant: ObjectId, email: str) -> Optional[dict]:
    return database[ACCOUNTS].find_one({"adminObjectId": tenant, "email": normalize_email(email)})


def get_account(database: Database, identity: Identity) -> dict:
    """Load the caller's account, never crossing tenants."""
    if not ObjectId.is_valid(identity.user_id) or not ObjectId.is_valid(identity.admin_object_id):
        raise NotFound("User not found")
    account = database[ACCOUNTS].find_one({
        "_id": ObjectId(identity.user_id),
        "adminObjectId": ObjectId(identity.admin_object_id),
    })
    if not account:
        raise NotFound("User not found")
    return account


def _session(account: dict, tenant: ObjectId, **extra) -> dict:
    user_id = str(account["_id"])
    data = {
        "userId": user_id,
        "firstName": account.get("firstName"),
        "lastName": account.get("lastName"),
        "email": account["email"],
        "phone": account.get("phone"),
    }
    data.update(extra)
    data["token"] = issue_token(user_id, account["email"], str(tenant))
    return data


def _insert(database: Database, account: Account) -> dict:
    if find_account(database, account.admin_object_id, account.email):
        raise DuplicateAccount()
    try:
        user_id = create_document(ACCOUNTS, account, database)
    except DuplicateKeyError:
        # lost a race with a concurrent registration
        raise DuplicateAccount()
    doc = account.model_dump(by_alias=True)
    doc["_id"] = ObjectId(user_id)
    logger.info("Registered account %s for tenant %s", user_id, account.admin_object_id)
    return doc


def register(database: Database, payload: RegisterRequest) -> dict:
    required = (payload.admin_object_id, payload.first_name, payload.last_name,
                payload.email, payload.password, payload.phone)
    if not all(required):
        raise ValidationError("All fields are required")
    tenant = tenant_oid(payload.admin_object_id)

    account = Account(
        admin_object_id=tenant,
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        full_name=f"{payload.first_name.strip()} {payload.last_name.strip()}",
        email=normalize_email(payload.email),
        password=hash_password(payload.password),
        phone=payload.phone.strip(),
        country_code=payload.country_code or config.DEFAULT_COUNTRY_CODE,
    )
    doc = _insert(database, account)
    return _session(doc, tenant)


def create_user(database: Database, payload: CreateUserRequest) -> dict:
    """Dynamic-form signup: only tenant, email and password are mandatory."""
    if not (payload.admin_object_id and payload.email and payload.password):
        raise ValidationError("adminObjectId, email, and password are required")
    tenant = tenant_oid(payload.admin_object_id)

    names = (payload.full_name or "").split()
    first_name = payload.first_name or (names[0] if names else "")
    last_name = payload.last_name or " ".join(names[1:])
    full_name = payload.full_name or f"{first_name} {last_name}".strip()

    account = Account(
        admin_object_id=tenant,
        first_name=first_name,
        last_name=last_name,
        full_name=full_name,
        email=normalize_email(payload.email),
        password=hash_password(payload.password),
        phone=payload.phone or "",
        country_code=payload.country_code or config.DEFAULT_COUNTRY_CODE,
    )
    doc = _insert(database, account)
    return _session(doc, tenant, fullName=doc.get("fullName"))


def login(database: Database, payload: LoginRequest) -> dict:
    if not (payload.admin_object_id and payload.email and payload.password):
        raise ValidationError("All fields are required")
    tenant = tenant_oid(payload.admin_object_id)

    account = find_account(database, tenant, payload.email)
    if not account or not verify_password(payload.password, account.get("password", "")):
        logger.warning("Failed login for tenant %s", tenant)
        raise InvalidCredentials()
    logger.info("Login %s for tenant %s", account["_id"], tenant)
    return _session(account, tenant)


def exists(database: Database, payload: CheckRequest) -> bool:
    if not (payload.admin_object_id and payload.email):
        raise ValidationError("adminObjectId and email are required")
    tenant = tenant_oid(payload.admin_object_id)
    return find_account(database, tenant, payload.email) is not None


def profile(database: Database, identity: Identity) -> dict:
    account = get_account(database, identity)
    account.pop("password", None)
    return account


def touch(database: Database, account: dict, **fields) -> None:
    """Persist the given account fields and bump updatedAt."""
    fields["updatedAt"] = now()
    account.update(fields)
    database[ACCOUNTS].update_one({"_id": account["_id"]}, {"$set": fields})
