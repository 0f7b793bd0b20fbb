# profile_proxy/services/uploads.py
"""
Profile image upload, as a fixed sequence of stages:

    decode -> stage -> upload -> register -> attach

Nothing is retried and nothing is rolled back: if register or attach fails
after the binary upload, the uploaded file stays orphaned upstream.
"""
import base64
import binascii
import re
import time

from ..clients.shopify import graphql, mutation_block, post_staged_upload, to_gid
from ..errors import UpstreamUserError, ValidationError
from ..utils.logger import info

MIME_TYPE = "image/jpeg"
DATA_URI_PREFIX = re.compile(r"^data:[^,]*;base64,", re.IGNORECASE)

STAGED_UPLOADS_CREATE = """
mutation stagedUploadsCreate($input: [StagedUploadInput!]!) {
  stagedUploadsCreate(input: $input) {
    stagedTargets {
      url
      resourceUrl
      parameters { name value }
    }
    userErrors { field message }
  }
}
"""

FILE_CREATE = """
mutation fileCreate($files: [FileCreateInput!]!) {
  fileCreate(files: $files) {
    files { id fileStatus }
    userErrors { field message }
  }
}
"""

ATTACH_PROFILE_IMAGE = """
mutation updateCustomerImage($input: CustomerInput!) {
  customerUpdate(input: $input) {
    customer { id }
    userErrors { field message }
  }
}
"""


def decode_image(image_data: str) -> bytes:
    payload = "".join(DATA_URI_PREFIX.sub("", image_data.strip()).split())
    try:
        content = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError):
        raise ValidationError("image_url is not valid base64 data")
    if not content:
        raise ValidationError("image_url contains no image data")
    return content


def upload_filename(customer_id, now=None) -> str:
    millis = int((time.time() if now is None else now) * 1000)
    return f"profile_{customer_id}_{millis}.jpg"


def stage(store: dict, filename: str) -> dict:
    variables = {"input": [{
        "resource": "IMAGE",
        "filename": filename,
        "mimeType": MIME_TYPE,
        "httpMethod": "POST",
    }]}
    block = mutation_block(graphql(store, STAGED_UPLOADS_CREATE, variables), "stagedUploadsCreate")
    targets = block.get("stagedTargets") or []
    if not targets or not targets[0].get("url"):
        raise UpstreamUserError("No staged upload target returned")
    return targets[0]


def upload(target: dict, filename: str, content: bytes):
    post_staged_upload(target["url"], target.get("parameters") or [], filename, content, MIME_TYPE)


def register(store: dict, resource_url: str, alt: str = "") -> str:
    variables = {"files": [{"alt": alt, "contentType": "IMAGE", "originalSource": resource_url}]}
    block = mutation_block(graphql(store, FILE_CREATE, variables), "fileCreate")
    files = block.get("files") or []
    if not files or not files[0].get("id"):
        raise UpstreamUserError("File creation returned no file id")
    return files[0]["id"]


def attach(store: dict, customer_id, file_id: str):
    variables = {
        "input": {
            "id": to_gid("Customer", customer_id),
            "metafields": [{
                "namespace": "custom",
                "key": "profile_image",
                "type": "file_reference",
                "value": file_id,
            }],
        }
    }
    mutation_block(graphql(store, ATTACH_PROFILE_IMAGE, variables), "customerUpdate")


def upload_profile_image(store: dict, customer_id, image_data) -> str:
    """Run the whole pipeline and return the new file id."""
    if not customer_id or not image_data:
        raise ValidationError("Customer ID and image URL required")
    if not isinstance(image_data, str):
        raise ValidationError("image_url must be a base64 string")

    content = decode_image(image_data)
    filename = upload_filename(customer_id)

    target = stage(store, filename)
    info(f"[upload] staged {filename} ({len(content)} bytes)")

    upload(target, filename, content)

    file_id = register(store, target.get("resourceUrl"), alt=f"Profile image for customer {customer_id}")
    info(f"[upload] registered {file_id}")

    attach(store, customer_id, file_id)
    info(f"[upload] attached {file_id} to customer {customer_id}")
    return file_id
