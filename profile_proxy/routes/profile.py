# profile_proxy/routes/profile.py
from flask import Blueprint, request

from . import current_store, request_body
from ..services import customers, uploads

bp = Blueprint("profile", __name__)


@bp.post("/update-customer")
def update_customer():
    customer = customers.update_customer(current_store(), request_body())
    return {"success": True, "message": "Customer updated successfully", "customer": customer}, 200


@bp.post("/update-profile")
def update_profile():
    customer = customers.update_profile(current_store(), request_body())
    if customer is None:
        return {"success": True, "message": "No metafields to update"}, 200
    return {"success": True, "message": "Profile updated successfully", "customer": customer}, 200


@bp.get("/get-profile")
def get_profile():
    customer = customers.get_profile(current_store(), request.args.get("customer_id"))
    return {"success": True, "customer": customer}, 200


@bp.post("/upload-profile-image")
def upload_profile_image():
    body = request_body()
    file_id = uploads.upload_profile_image(current_store(), body.get("customer_id"), body.get("image_url"))
    return {"success": True, "message": "Profile image updated successfully", "fileId": file_id}, 200
