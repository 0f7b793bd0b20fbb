# profile_proxy/routes/wishlist.py
from flask import Blueprint, request

from . import current_store, request_body
from ..services import wishlist as service

bp = Blueprint("wishlist", __name__)

TRUTHY = ("1", "true", "yes")


@bp.get("")
def get_wishlist():
    expand = (request.args.get("expand") or "").lower() in TRUTHY
    entries = service.get_wishlist(current_store(), request.args.get("customer_id"), expand=expand)
    return {"success": True, "wishlist": entries}, 200


@bp.post("/add")
def add():
    body = request_body()
    entries = service.add_to_wishlist(current_store(), body.get("customer_id"), body)
    return {"success": True, "wishlist": entries}, 200


@bp.post("/remove")
def remove():
    body = request_body()
    entries = service.remove_from_wishlist(current_store(), body.get("customer_id"), body)
    return {"success": True, "wishlist": entries}, 200


@bp.post("/attach-handles")
def attach_handles():
    body = request_body()
    entries = service.attach_handles(current_store(), body.get("customer_id"), body.get("mappings"))
    return {"success": True, "wishlist": entries}, 200
