import base64

import pytest

from profile_proxy.errors import UpstreamTransportError, UpstreamUserError, ValidationError
from profile_proxy.services import uploads

JPEG = b"\xff\xd8\xff\xe0fake-jpeg-bytes"
DATA_URI = "data:image/jpeg;base64," + base64.b64encode(JPEG).decode()


def test_decode_strips_data_uri_prefix():
    assert uploads.decode_image(DATA_URI) == JPEG
    assert uploads.decode_image(base64.b64encode(JPEG).decode()) == JPEG


def test_decode_rejects_garbage():
    with pytest.raises(ValidationError):
        uploads.decode_image("data:image/jpeg;base64,abc")


@pytest.mark.parametrize("image", ["data:image/jpeg;base64,", "data:image/jpeg;base64,!!!!", "not base64 at all"])
def test_undecodable_image_stops_before_staging(store, fake, image):
    with pytest.raises(ValidationError):
        uploads.upload_profile_image(store, "42", image)
    assert fake.calls == []


def test_decode_ignores_line_breaks():
    encoded = base64.b64encode(JPEG).decode()
    wrapped = "data:image/jpeg;base64," + "\n".join(encoded[i:i + 8] for i in range(0, len(encoded), 8))
    assert uploads.decode_image(wrapped) == JPEG


def test_upload_filename_includes_customer_and_time():
    assert uploads.upload_filename("42", now=1700000000.5) == "profile_42_1700000000500.jpg"


def test_pipeline_runs_every_stage_in_order(store, fake):
    file_id = uploads.upload_profile_image(store, "42", DATA_URI)

    assert file_id == "gid://shopify/MediaImage/77"
    assert fake.calls == ["stage", "upload", "fileCreate", "customerUpdate"]

    sent = fake.uploaded[0]
    assert sent["url"] == "https://uploads.example.com/bucket"
    assert [p["name"] for p in sent["parameters"]] == ["key", "Content-Type", "policy"]
    assert sent["content"] == JPEG
    assert sent["mime_type"] == "image/jpeg"
    assert sent["filename"].startswith("profile_42_")

    assert fake.last_input["metafields"] == [{
        "namespace": "custom",
        "key": "profile_image",
        "type": "file_reference",
        "value": "gid://shopify/MediaImage/77",
    }]


def test_stage_user_error_stops_pipeline(store, fake):
    fake.user_errors["stagedUploadsCreate"] = [{"field": ["input"], "message": "Invalid filename"}]

    with pytest.raises(UpstreamUserError):
        uploads.upload_profile_image(store, "42", DATA_URI)

    assert fake.calls == ["stage"]


def test_stage_without_target_stops_pipeline(store, fake):
    fake.staged_targets = []
    with pytest.raises(UpstreamUserError):
        uploads.upload_profile_image(store, "42", DATA_URI)
    assert fake.calls == ["stage"]


def test_upload_failure_is_a_transport_error(store, fake, monkeypatch):
    def refuse(*args, **kwargs):
        fake.calls.append("upload")
        raise UpstreamTransportError("Staged upload failed 403")

    monkeypatch.setattr(uploads, "post_staged_upload", refuse)

    with pytest.raises(UpstreamTransportError):
        uploads.upload_profile_image(store, "42", DATA_URI)
    assert fake.calls == ["stage", "upload"]


def test_register_without_file_id_skips_attach(store, fake):
    fake.created_files = []
    with pytest.raises(UpstreamUserError):
        uploads.upload_profile_image(store, "42", DATA_URI)
    assert "customerUpdate" not in fake.calls


def test_missing_fields_are_rejected_before_any_call(store, fake):
    with pytest.raises(ValidationError):
        uploads.upload_profile_image(store, "", DATA_URI)
    with pytest.raises(ValidationError):
        uploads.upload_profile_image(store, "42", None)
    assert fake.calls == []
