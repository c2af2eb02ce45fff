import os

import yaml

CONFIG_DIR = os.path.dirname(os.path.abspath(__file__))


def get_default_config():
    """Get default configuration"""
    return {
        "video_gen": {
            "model_id": "veo-2.0-generate-001",
            "base_url": "https://generativelanguage.googleapis.com/v1beta",
            "number_of_videos": 1,
            "poll_interval_sec": 10,
            "request_timeout_sec": 60,
            "download_timeout_sec": 300,
        },
        "logging": {
            "log_file": "logs/img2vid.log",
            "level": "INFO",
            "enable_console": True,
        },
        "server": {
            "host": "0.0.0.0",
            "port": 8000,
            "refresh_sec": 3,
            "session_timeout_minutes": 60,
        },
    }


def _resolve_config_path(config_path=None):
    if config_path:
        return config_path
    config_path = os.path.join(CONFIG_DIR, "config.yaml")
    if not os.path.exists(config_path):
        config_path = os.path.join(CONFIG_DIR, "config.example.yaml")
    return config_path


def _merge(defaults, overrides):
    merged = dict(defaults)
    for key, value in (overrides or {}).items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


def apply_env_overrides(config, env_vars):
    """
    Override file settings with environment variables.

    The API key is deliberately not part of the config dict; it is read from the
    environment when a generation starts.
    """
    video_gen = config.setdefault("video_gen", {})
    if env_vars.get("VEO_MODEL_ID"):
        video_gen["model_id"] = env_vars["VEO_MODEL_ID"]
    if env_vars.get("VEO_BASE_URL"):
        video_gen["base_url"] = env_vars["VEO_BASE_URL"]
    if env_vars.get("POLL_INTERVAL_SEC"):
        video_gen["poll_interval_sec"] = float(env_vars["POLL_INTERVAL_SEC"])

    logging_config = config.setdefault("logging", {})
    if env_vars.get("LOG_FILE"):
        logging_config["log_file"] = env_vars["LOG_FILE"]
    if env_vars.get("LOG_LEVEL"):
        logging_config["level"] = env_vars["LOG_LEVEL"].upper()
    return config


def load_config(config_path=None, env_vars=None):
    """Load configuration from YAML, merged over defaults, then environment overrides."""
    config_path = _resolve_config_path(config_path)

    file_config = {}
    if os.path.exists(config_path):
        with open(config_path, "r", encoding="utf-8") as f:
            file_config = yaml.safe_load(f) or {}

    config = _merge(get_default_config(), file_config)
    return apply_env_overrides(config, os.environ if env_vars is None else env_vars)


config = load_config()
