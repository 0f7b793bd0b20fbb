import json

import pytest

from profile_proxy import create_app
from profile_proxy.services import customers, uploads, wishlist


class FakeAdmin:
    """In-memory stand-in for the Admin API, keyed off the query text."""

    def __init__(self):
        self.metafields: dict[str, str] = {}
        self.types: dict[str, str] = {}
        self.products: dict[str, dict] = {}
        self.handles: dict[str, dict] = {}
        self.user_errors: dict[str, list] = {}
        self.lookup_error = None
        self.staged_targets = [{
            "url": "https://uploads.example.com/bucket",
            "resourceUrl": "https://uploads.example.com/bucket/tmp/profile.jpg",
            "parameters": [
                {"name": "key", "value": "tmp/profile.jpg"},
                {"name": "Content-Type", "value": "image/jpeg"},
                {"name": "policy", "value": "signed"},
            ],
        }]
        self.created_files = [{"id": "gid://shopify/MediaImage/77", "fileStatus": "UPLOADED"}]
        self.calls: list[str] = []
        self.last_input: dict = {}
        self.uploaded: list[dict] = []

    # ---- helpers for tests ----
    def set_wishlist(self, value, type_="multi_line_text_field"):
        self.metafields["wishlist"] = value if isinstance(value, str) else json.dumps(value)
        self.types["wishlist"] = type_

    def stored_wishlist(self):
        return json.loads(self.metafields["wishlist"])

    def saves(self) -> int:
        return self.calls.count("customerUpdate")

    # ---- patched client functions ----
    def graphql(self, store, query, variables=None):
        variables = variables or {}
        if "stagedUploadsCreate" in query:
            self.calls.append("stage")
            return {"stagedUploadsCreate": {
                "stagedTargets": self.staged_targets,
                "userErrors": self.user_errors.get("stagedUploadsCreate", []),
            }}
        if "fileCreate" in query:
            self.calls.append("fileCreate")
            self.last_input = variables
            return {"fileCreate": {
                "files": self.created_files,
                "userErrors": self.user_errors.get("fileCreate", []),
            }}
        if "customerUpdate" in query:
            self.calls.append("customerUpdate")
            self.last_input = variables["input"]
            errs = self.user_errors.get("customerUpdate", [])
            if errs:
                return {"customerUpdate": {"customer": None, "userErrors": errs}}
            for m in self.last_input.get("metafields", []):
                stored_type = self.types.get(m["key"])
                if stored_type and stored_type != m["type"]:
                    return {"customerUpdate": {"customer": None, "userErrors": [{
                        "field": ["metafields", "0", "type"],
                        "message": f"Type must be {stored_type}",
                    }]}}
            for m in self.last_input.get("metafields", []):
                self.metafields[m["key"]] = m["value"]
                self.types[m["key"]] = m["type"]
            return {"customerUpdate": {"customer": self._customer(self.last_input["id"]), "userErrors": []}}
        if "productByHandle" in query:
            self.calls.append("productByHandle")
            return {"productByHandle": self.handles.get(variables["handle"])}
        if "customer(id" in query:
            self.calls.append("customer")
            if "metafield(namespace" in query:
                return {"customer": self._customer_metafield(variables["id"], "wishlist")}
            return {"customer": self._customer(variables["id"])}
        raise AssertionError(f"unexpected query: {query}")

    def _customer(self, gid):
        # list pages stop at 25 like the real connection
        edges = [{"node": {"key": k, "value": v}} for k, v in self.metafields.items()][:25]
        return {"id": gid, "firstName": "Ada", "metafields": {"edges": edges}}

    def _customer_metafield(self, gid, key):
        if key not in self.metafields:
            return {"id": gid, "metafield": None}
        return {"id": gid, "metafield": {"value": self.metafields[key], "type": self.types.get(key)}}

    def get_product(self, store, pid):
        self.calls.append(f"get_product:{pid}")
        if self.lookup_error:
            raise self.lookup_error
        return self.products.get(str(pid))

    def product_by_handle(self, store, handle):
        return self.graphql(store, "query productByHandle", {"handle": handle})["productByHandle"]

    def post_staged_upload(self, url, parameters, filename, content, mime_type):
        self.calls.append("upload")
        self.uploaded.append({"url": url, "parameters": parameters, "filename": filename,
                              "content": content, "mime_type": mime_type})


@pytest.fixture
def store():
    return {
        "domain": "test-shop.myshopify.com",
        "token": "shpat_test",
        "api_version": "2024-10",
        "port": 3000,
        "max_body_mb": 10,
    }


@pytest.fixture
def fake(monkeypatch):
    admin = FakeAdmin()
    monkeypatch.setattr(wishlist, "graphql", admin.graphql)
    monkeypatch.setattr(wishlist, "get_product", admin.get_product)
    monkeypatch.setattr(wishlist, "product_by_handle", admin.product_by_handle)
    monkeypatch.setattr(customers, "graphql", admin.graphql)
    monkeypatch.setattr(uploads, "graphql", admin.graphql)
    monkeypatch.setattr(uploads, "post_staged_upload", admin.post_staged_upload)
    return admin


@pytest.fixture
def app(store):
    app = create_app(store)
    app.config["TESTING"] = True
    return app


@pytest.fixture
def client(app):
    return app.test_client()
