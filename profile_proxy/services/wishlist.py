# profile_proxy/services/wishlist.py
import json
from typing import Optional

from ..clients.shopify import graphql, mutation_block, get_product, product_by_handle, to_gid, from_gid
from ..errors import ProxyError, ValidationError
from ..utils.logger import debug, info, warn, error

NAMESPACE = "custom"
WISHLIST_KEY = "wishlist"
# used only when the customer has no wishlist metafield yet; an existing one keeps its type
WISHLIST_TYPE = "multi_line_text_field"

CUSTOMER_WISHLIST = """
query($id: ID!) {
  customer(id: $id) {
    id
    metafield(namespace: "custom", key: "wishlist") { value type }
  }
}
"""

SAVE_WISHLIST = """
mutation updateCustomerWishlist($input: CustomerInput!) {
  customerUpdate(input: $input) {
    customer { id }
    userErrors { field message }
  }
}
"""

# =========================================================
# Entries
# =========================================================

def normalize_entry(raw):
    """Legacy bare ids become {"id": "<id>"}; everything else passes through."""
    if isinstance(raw, bool):
        return raw
    if isinstance(raw, (str, int, float)):
        if isinstance(raw, float) and raw.is_integer():
            raw = int(raw)
        return {"id": str(raw)}
    if isinstance(raw, dict):
        return dict(raw)
    return raw

def normalize(entries: list) -> list:
    return [normalize_entry(e) for e in entries]

def parse_wishlist(value) -> list:
    if not value:
        return []
    try:
        parsed = json.loads(value)
    except (TypeError, ValueError):
        warn(f"[wishlist] stored value is not JSON, treating as empty: {str(value)[:80]!r}")
        return []
    if not isinstance(parsed, list):
        warn("[wishlist] stored value is not a JSON array, treating as empty")
        return []
    return parsed

def _id(entry) -> Optional[str]:
    if isinstance(entry, dict) and entry.get("id") not in (None, ""):
        return str(entry["id"])
    return None

def _handle(entry) -> Optional[str]:
    if isinstance(entry, dict) and entry.get("handle"):
        return entry["handle"]
    return None

def same_product(a, b) -> bool:
    ha, hb = _handle(a), _handle(b)
    if ha and hb and ha == hb:
        return True
    ia, ib = _id(a), _id(b)
    return bool(ia and ib and ia == ib)

def contains(entries: list, candidate) -> bool:
    return any(same_product(e, candidate) for e in entries)

def entry_from_product(product: dict) -> dict:
    """Flatten a REST or GraphQL product into a wishlist entry."""
    image = product.get("image") or product.get("featuredImage") or {}
    entry = {
        "id": from_gid(product["id"]) if product.get("id") else None,
        "handle": product.get("handle"),
        "title": product.get("title"),
        "image": image.get("src") or image.get("url"),
    }
    return {k: v for k, v in entry.items() if v}

# =========================================================
# Product lookups (best-effort)
# =========================================================

def lookup_by_id(store: dict, pid, cache: Optional[dict] = None) -> Optional[dict]:
    key = f"id:{pid}"
    if cache is not None and key in cache:
        return cache[key]
    try:
        product = get_product(store, pid)
        found = entry_from_product(product) if product else None
    except ProxyError as e:
        warn(f"[wishlist] product lookup failed for id={pid}: {e}")
        found = None
    if cache is not None:
        cache[key] = found
    return found

def lookup_by_handle(store: dict, handle: str) -> Optional[dict]:
    try:
        product = product_by_handle(store, handle)
    except ProxyError as e:
        warn(f"[wishlist] product lookup failed for handle={handle}: {e}")
        return None
    return entry_from_product(product) if product else None

# =========================================================
# Metafield storage
# =========================================================

def load_wishlist(store: dict, customer_id) -> tuple[list, str]:
    """Return (normalized entries, metafield type to write back with)."""
    data = graphql(store, CUSTOMER_WISHLIST, {"id": to_gid("Customer", customer_id)})
    metafield = (data.get("customer") or {}).get("metafield") or {}
    return normalize(parse_wishlist(metafield.get("value"))), metafield.get("type") or WISHLIST_TYPE

def save_wishlist(store: dict, customer_id, entries: list, type_: str = WISHLIST_TYPE):
    variables = {
        "input": {
            "id": to_gid("Customer", customer_id),
            "metafields": [{
                "namespace": NAMESPACE,
                "key": WISHLIST_KEY,
                "type": type_,
                "value": json.dumps(entries),
            }],
        }
    }
    mutation_block(graphql(store, SAVE_WISHLIST, variables), "customerUpdate")
    debug(f"[wishlist] saved {len(entries)} entries for customer {customer_id}")

def _save_best_effort(store: dict, customer_id, entries: list, type_: str):
    try:
        save_wishlist(store, customer_id, entries, type_)
    except ProxyError as e:
        error(f"[wishlist] best-effort save failed for customer {customer_id}: {e}")

def _require_customer(customer_id):
    if not customer_id:
        raise ValidationError("Customer ID is required")

# =========================================================
# Operations
# =========================================================

def get_wishlist(store: dict, customer_id, expand: bool = False) -> list:
    _require_customer(customer_id)
    stored, mf_type = load_wishlist(store, customer_id)
    entries = [dict(e) if isinstance(e, dict) else e for e in stored]
    cache: dict = {}

    if expand:
        for i, entry in enumerate(entries):
            if not isinstance(entry, dict) or entry.get("title") or entry.get("handle") or not _id(entry):
                continue
            fetched = lookup_by_id(store, _id(entry), cache)
            if fetched:
                entries[i] = {**fetched, **entry}

    # Backfill handles for id-only entries and persist when anything was learned.
    for i, entry in enumerate(entries):
        if not isinstance(entry, dict) or not _id(entry) or _handle(entry):
            continue
        fetched = lookup_by_id(store, _id(entry), cache)
        if fetched and fetched.get("handle"):
            entries[i] = {**fetched, **entry}

    gained = [i for i, (old, new) in enumerate(zip(stored, entries)) if _id(old) and not _handle(old) and _handle(new)]
    if gained:
        info(f"[wishlist] backfilled {len(gained)} handle(s) for customer {customer_id}")
        _save_best_effort(store, customer_id, entries, mf_type)
    return entries

def _has_selector(body: dict) -> bool:
    product = body.get("product")
    return bool((isinstance(product, dict) and product) or body.get("product_handle") or body.get("product_id"))

def _resolve_new_entry(store: dict, body: dict) -> dict:
    """`product` is taken as-is, then `product_handle`, then `product_id` via lookup."""
    product = body.get("product")
    if isinstance(product, dict) and product:
        return product
    if body.get("product_handle"):
        return {"handle": body["product_handle"]}
    if body.get("product_id"):
        pid = from_gid(body["product_id"])
        return lookup_by_id(store, pid) or {"id": pid}
    return {}

def add_to_wishlist(store: dict, customer_id, body: dict) -> list:
    _require_customer(customer_id)
    if not _has_selector(body):
        raise ValidationError("product_id, product_handle or product is required")
    entries, mf_type = load_wishlist(store, customer_id)
    entry = _resolve_new_entry(store, body)

    if contains(entries, entry):
        debug(f"[wishlist] customer {customer_id} already has {entry}")
    else:
        entries.append(entry)
        info(f"[wishlist] customer {customer_id} +{_handle(entry) or _id(entry)}")

    save_wishlist(store, customer_id, entries, mf_type)
    return entries

def _removal_targets(body: dict) -> tuple[Optional[str], Optional[str]]:
    handle_to_remove, id_to_remove = None, None
    product = body.get("product")
    if isinstance(product, dict):
        handle_to_remove = product.get("handle") or None
        id_to_remove = from_gid(product["id"]) if _id(product) else None
    if body.get("product_handle"):
        handle_to_remove = body["product_handle"]
    if body.get("product_id"):
        id_to_remove = from_gid(body["product_id"])
    return handle_to_remove, id_to_remove

def remove_from_wishlist(store: dict, customer_id, body: dict) -> list:
    _require_customer(customer_id)
    handle_to_remove, id_to_remove = _removal_targets(body)
    if not handle_to_remove and not id_to_remove:
        raise ValidationError("product_id, product_handle or product is required")

    entries, mf_type = load_wishlist(store, customer_id)

    def matches(entry) -> bool:
        if handle_to_remove and _handle(entry) and _handle(entry) == handle_to_remove:
            return True
        return bool(id_to_remove and _id(entry) and _id(entry) == str(id_to_remove))

    kept = [e for e in entries if not matches(e)]
    info(f"[wishlist] customer {customer_id} -{len(entries) - len(kept)}")
    save_wishlist(store, customer_id, kept, mf_type)
    return kept

def _index_of(entries: list, pid: Optional[str] = None, handle: Optional[str] = None) -> Optional[int]:
    for i, entry in enumerate(entries):
        if pid and _id(entry) == pid:
            return i
        if not pid and handle and _handle(entry) == handle:
            return i
    return None

def attach_handles(store: dict, customer_id, mappings) -> list:
    _require_customer(customer_id)
    if not isinstance(mappings, list):
        raise ValidationError("mappings array is required")

    entries, mf_type = load_wishlist(store, customer_id)
    changed = False

    for mapping in mappings:
        if not isinstance(mapping, dict):
            continue
        pid = from_gid(mapping["id"]) if mapping.get("id") else None
        handle = mapping.get("handle")

        if handle:
            fetched = lookup_by_handle(store, handle) or {"handle": handle}
            if pid and "id" not in fetched:
                fetched["id"] = pid
            idx = _index_of(entries, pid=pid, handle=fetched.get("handle"))
            if idx is not None:
                merged = {**entries[idx], **fetched}
                if merged != entries[idx]:
                    entries[idx] = merged
                    changed = True
            elif not contains(entries, fetched):
                entries.append(fetched)
                changed = True
        elif pid:
            fetched = lookup_by_id(store, pid)
            idx = _index_of(entries, pid=pid)
            if not fetched or not fetched.get("handle") or idx is None:
                continue
            if entries[idx].get("handle") != fetched["handle"]:
                entries[idx] = {**fetched, **entries[idx], "handle": fetched["handle"]}
                changed = True

    if changed:
        _save_best_effort(store, customer_id, entries, mf_type)
    return entries
