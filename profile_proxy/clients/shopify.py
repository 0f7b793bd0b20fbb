import requests

from ..errors import UpstreamTransportError, UpstreamUserError
from ..utils.logger import warn

GID_PREFIX = "gid://shopify"

PRODUCT_BY_HANDLE = """
query($handle:String!) {
  productByHandle(handle:$handle) {
    id
    title
    handle
    featuredImage { url }
  }
}
"""

def admin_base(store: dict) -> str:
    return f"https://{store['domain']}/admin/api/{store['api_version']}"

def rest_headers(token: str) -> dict:
    return {"Content-Type": "application/json", "X-Shopify-Access-Token": token}

def to_gid(kind: str, value) -> str:
    value = str(value)
    if value.startswith(GID_PREFIX):
        return value
    return f"{GID_PREFIX}/{kind}/{value}"

def from_gid(value) -> str:
    """gid://shopify/Product/123 -> "123"; bare ids pass through as strings."""
    return str(value).split("/")[-1]

def _json_or_raise(r: requests.Response, what: str) -> dict:
    if not r.ok:
        raise UpstreamTransportError(f"{what} failed {r.status_code}: {r.text[:500]}")
    try:
        return r.json()
    except ValueError:
        raise UpstreamTransportError(f"{what} returned a non-JSON body")

def graphql(store: dict, query: str, variables=None) -> dict:
    """POST a query to the Admin GraphQL endpoint and return its `data` block."""
    url = f"{admin_base(store)}/graphql.json"
    try:
        r = requests.post(url, headers=rest_headers(store["token"]),
                          json={"query": query, "variables": variables or {}}, timeout=30)
    except requests.RequestException as e:
        raise UpstreamTransportError(str(e))

    resp = _json_or_raise(r, "GraphQL request")
    top_errors = resp.get("errors")
    if top_errors:
        msg = "; ".join(e.get("message", "") if isinstance(e, dict) else str(e) for e in top_errors) \
            if isinstance(top_errors, list) else str(top_errors)
        raise UpstreamTransportError(f"GraphQL errors: {msg}")
    return resp.get("data") or {}

def mutation_block(data: dict, name: str) -> dict:
    """Unwrap a mutation payload, raising on userErrors."""
    block = data.get(name)
    if block is None:
        raise UpstreamTransportError(f"Missing {name} in GraphQL response")
    errs = block.get("userErrors") or []
    if errs:
        raise UpstreamUserError(errs)
    return block

# =========================================================
# Product lookups
# =========================================================

def get_product(store: dict, pid) -> dict | None:
    """REST product-by-id. None when the product does not exist."""
    try:
        r = requests.get(f"{admin_base(store)}/products/{from_gid(pid)}.json",
                         headers=rest_headers(store["token"]), timeout=25)
    except requests.RequestException as e:
        raise UpstreamTransportError(str(e))
    if r.status_code == 404:
        return None
    return _json_or_raise(r, "Product lookup").get("product")

def product_by_handle(store: dict, handle: str) -> dict | None:
    if not handle:
        return None
    data = graphql(store, PRODUCT_BY_HANDLE, {"handle": handle})
    return data.get("productByHandle")

# =========================================================
# Signed uploads
# =========================================================

def post_staged_upload(url: str, parameters: list[dict], filename: str, content: bytes, mime_type: str):
    """
    Multipart POST to a signed upload target. The signed parameters go first,
    in the order given, and the binary is the final `file` field.
    """
    fields = [(p.get("name"), p.get("value")) for p in parameters or []]
    try:
        r = requests.post(url, data=fields, files={"file": (filename, content, mime_type)}, timeout=120)
    except requests.RequestException as e:
        raise UpstreamTransportError(f"Staged upload failed: {e}")
    if not r.ok:
        warn(f"[shopify] staged upload rejected: {r.status_code} {r.text[:300]}")
        raise UpstreamTransportError(f"Staged upload failed {r.status_code}")
