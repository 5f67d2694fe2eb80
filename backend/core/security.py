import base64
import binascii
import json
import logging
import os
import random
import string
import uuid
from typing import Optional

import firebase_admin
from firebase_admin import auth as firebase_auth, credentials
from firebase_admin.exceptions import FirebaseError

from config import settings

logger = logging.getLogger(__name__)


# ── Firebase Admin ────────────────────────────────────────────────────────────
def _load_credentials():
    """Service account from FB_SERVICE_KEY (base64 JSON), else from the JSON file."""
    if settings.FB_SERVICE_KEY:
        try:
            decoded = base64.b64decode(settings.FB_SERVICE_KEY).decode("utf-8")
            return credentials.Certificate(json.loads(decoded))
        except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as e:
            logger.error(f"FB_SERVICE_KEY is not a valid base64 service account: {e}")
            return None
    if os.path.exists(settings.FIREBASE_CREDENTIALS_PATH):
        return credentials.Certificate(settings.FIREBASE_CREDENTIALS_PATH)
    return None


def init_firebase() -> None:
    try:
        firebase_admin.get_app()
        return
    except ValueError:
        pass

    try:
        cred = _load_credentials()
        if cred is not None:
            firebase_admin.initialize_app(cred)
        else:
            # Application default credentials (Cloud Run, Railway...)
            firebase_admin.initialize_app()
        logger.info("Firebase Admin initialised")
    except Exception as e:
        logger.error(f"Firebase Admin initialisation failed: {e}")


def verify_id_token(token: str) -> Optional[dict]:
    """Returns the decoded Firebase claims, or None if the token is rejected."""
    try:
        return firebase_auth.verify_id_token(token)
    except (ValueError, FirebaseError) as e:
        logger.info(f"Token verification failed: {e}")
        return None


# ── Identifiers ───────────────────────────────────────────────────────────────
def new_id(prefix: str) -> str:
    return f"{prefix}_{uuid.uuid4().hex[:12]}"


def generate_tracking_code() -> str:
    """Human-readable code: PRF-ABC-1234"""
    chars = string.ascii_uppercase + string.digits
    code = "".join(random.choices(chars, k=7))
    return f"{settings.TRACKING_CODE_PREFIX}-{code[:3]}-{code[3:]}"
