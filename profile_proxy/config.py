import os

DEFAULT_API_VERSION = "2024-10"
DEFAULT_PORT = 3000
DEFAULT_MAX_BODY_MB = 10


class ConfigError(RuntimeError):
    pass


def load_config(environ=None) -> dict:
    """
    Build the store config once at startup.
    Raises ConfigError when the shop domain or access token is missing.
    """
    env = os.environ if environ is None else environ

    store = {
        "domain": (env.get("SHOP_NAME") or "").strip(),
        "token": (env.get("ACCESS_TOKEN") or "").strip(),
        "api_version": env.get("API_VERSION") or DEFAULT_API_VERSION,
        "port": int(env.get("PORT") or DEFAULT_PORT),
        "max_body_mb": int(env.get("MAX_BODY_MB") or DEFAULT_MAX_BODY_MB),
    }

    missing = [name for name, key in (("SHOP_NAME", "domain"), ("ACCESS_TOKEN", "token")) if not store[key]]
    if missing:
        raise ConfigError(f"Missing required environment variables: {', '.join(missing)}")
    return store
