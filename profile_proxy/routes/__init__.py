from flask import current_app, request


def request_body() -> dict:
    """JSON body, falling back to form fields."""
    body = request.get_json(silent=True)
    if isinstance(body, dict):
        return body
    return request.form.to_dict()


def current_store() -> dict:
    return current_app.config["STORE"]
