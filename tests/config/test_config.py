from img2vid.config.config import get_default_config, load_config


def test_defaults_when_no_file(tmp_path):
    config = load_config(config_path=str(tmp_path / "missing.yaml"), env_vars={})
    assert config == get_default_config()
    assert config["video_gen"]["poll_interval_sec"] == 10
    assert config["video_gen"]["model_id"] == "veo-2.0-generate-001"


def test_yaml_merges_over_defaults(tmp_path):
    path = tmp_path / "config.yaml"
    path.write_text("video_gen:\n  model_id: veo-test\n", encoding="utf-8")
    config = load_config(config_path=str(path), env_vars={})
    assert config["video_gen"]["model_id"] == "veo-test"
    assert config["video_gen"]["number_of_videos"] == 1


def test_env_overrides(tmp_path):
    env = {"POLL_INTERVAL_SEC": "2.5", "VEO_MODEL_ID": "veo-env", "LOG_LEVEL": "debug"}
    config = load_config(config_path=str(tmp_path / "missing.yaml"), env_vars=env)
    assert config["video_gen"]["poll_interval_sec"] == 2.5
    assert config["video_gen"]["model_id"] == "veo-env"
    assert config["logging"]["level"] == "DEBUG"


def test_api_key_never_stored_in_config(tmp_path):
    config = load_config(config_path=str(tmp_path / "missing.yaml"), env_vars={"API_KEY": "secret"})
    assert "secret" not in repr(config)
