# hmac_utils.py — Telegram WebApp initData signing + verification
#
# secret_key = HMAC_SHA256(key="WebAppData", msg=bot_token)   (key_mode="webapp")
#            | SHA256(bot_token)                              (key_mode="sha256")
# hash       = hex(HMAC_SHA256(key=secret_key, msg=data_check_string))
from __future__ import annotations
import hmac, hashlib, json, logging, re, time
from typing import Any, Dict, Iterable, Mapping, Optional
from urllib.parse import parse_qsl, urlencode

log = logging.getLogger("auth")

WEBAPP_LABEL = b"WebAppData"
HASH_RE = re.compile(r"[0-9a-f]{64}")


def parse_init_data(init_data: str) -> Dict[str, str]:
    """Strict query-string parse; raises ValueError on malformed input or repeated keys."""
    pairs = parse_qsl(init_data, keep_blank_values=True, strict_parsing=True)
    out: Dict[str, str] = {}
    for k, v in pairs:
        if k in out:
            raise ValueError(f"duplicate key {k!r}")
        out[k] = v
    return out

def data_check_string(pairs: Mapping[str, str]) -> str:
    # str ordering is by code point, which matches byte order of the UTF-8 encoding
    return "\n".join(f"{k}={pairs[k]}" for k in sorted(pairs) if k != "hash")

def derive_secret_key(bot_token: str, key_mode: str = "webapp") -> bytes:
    token = bot_token.encode("utf-8")
    if key_mode == "webapp":
        return hmac.new(WEBAPP_LABEL, token, hashlib.sha256).digest()
    if key_mode == "sha256":
        return hashlib.sha256(token).digest()
    raise ValueError(f"unknown key_mode {key_mode!r}")

def compute_hash(pairs: Mapping[str, str], bot_token: str, key_mode: str = "webapp") -> str:
    key = derive_secret_key(bot_token, key_mode)
    return hmac.new(key, data_check_string(pairs).encode("utf-8"), hashlib.sha256).hexdigest()


def _reject(reason: str) -> None:
    log.debug("initData rejected: %s", reason)
    return None

def _auth_date_ok(pairs: Mapping[str, str], max_age_s: int, now: Optional[float]) -> bool:
    try:
        ts = int(pairs["auth_date"])
    except (KeyError, ValueError):
        return False
    now = time.time() if now is None else now
    return abs(now - ts) <= max_age_s

def verify_init_data(
    init_data: Optional[str],
    bot_token: str,
    key_mode: str = "webapp",
    max_age_s: int = 0,
    now: Optional[float] = None,
) -> Optional[Dict[str, Any]]:
    """
    Returns the embedded `user` identity when initData carries a valid signature,
    else None. Never raises: malformed payloads and bad signatures look the same
    to the caller.

    max_age_s > 0 additionally requires a fresh integer auth_date.
    """
    if not init_data:
        return _reject("empty initData")
    if not bot_token:
        return _reject("bot token not configured")
    try:
        pairs = parse_init_data(init_data)
    except ValueError as e:
        return _reject(f"unparseable: {e}")

    claimed = pairs.pop("hash", None)
    if not claimed:
        return _reject("missing hash")
    if not HASH_RE.fullmatch(claimed):
        return _reject("hash is not 64 lowercase hex chars")

    try:
        expected = compute_hash(pairs, bot_token, key_mode)
    except ValueError as e:
        return _reject(str(e))
    if not hmac.compare_digest(expected.encode("ascii"), claimed.encode("ascii")):
        return _reject("signature mismatch")

    if max_age_s > 0 and not _auth_date_ok(pairs, max_age_s, now):
        return _reject("auth_date missing or expired")

    raw_user = pairs.get("user")
    if not raw_user:
        return _reject("missing user")
    try:
        user = json.loads(raw_user)
    except ValueError:
        return _reject("user is not JSON")
    if not isinstance(user, dict):
        return _reject("user is not an object")
    uid = user.get("id")
    if not isinstance(uid, int) or isinstance(uid, bool):
        return _reject("user.id is not an integer")
    return user


def sign_init_data(fields: Mapping[str, Any], bot_token: str, key_mode: str = "webapp") -> str:
    """Build a signed initData query string (dict `user` values are JSON-encoded)."""
    pairs: Dict[str, str] = {}
    for k, v in fields.items():
        if k == "hash":
            continue
        if isinstance(v, (dict, list)):
            v = json.dumps(v, separators=(",", ":"), ensure_ascii=False)
        pairs[k] = str(v)
    pairs["hash"] = compute_hash(pairs, bot_token, key_mode)
    return urlencode(pairs)


def display_name(user: Mapping[str, Any]) -> str:
    parts = [str(user.get(k) or "").strip() for k in ("first_name", "last_name")]
    return " ".join(p for p in parts if p)

def is_admin(user: Optional[Mapping[str, Any]], admin_ids: Iterable[str]) -> bool:
    if not user or user.get("id") is None:
        return False
    return str(user["id"]) in admin_ids
