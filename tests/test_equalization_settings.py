import pytest

from models.equalization_settings import EqualizationSettings


def test_defaults_from_env(monkeypatch):
    for name in ("EQUALIZER_DEVICE", "EQUALIZER_MAX_POLICY", "EQUALIZER_ROUNDING", "EQUALIZER_PROFILE_STAGES"):
        monkeypatch.delenv(name, raising=False)
    settings = EqualizationSettings.from_env()
    assert settings.max_policy == "per_channel"
    assert settings.rounding == "half_up"
    assert settings.target_max == 255
    assert settings.profile_stages is False


def test_env_values_and_overrides(monkeypatch):
    monkeypatch.setenv("EQUALIZER_MAX_POLICY", "global")
    monkeypatch.setenv("EQUALIZER_PROFILE_STAGES", "true")
    monkeypatch.setenv("EQUALIZER_TARGET_MAX", "200")
    settings = EqualizationSettings.from_env(device="cpu", rounding="truncate", max_policy=None)
    assert settings.max_policy == "global"
    assert settings.profile_stages is True
    assert settings.target_max == 200
    assert settings.rounding == "truncate"
    assert settings.device == "cpu"


@pytest.mark.parametrize("kwargs", [
    {"target_max": 0},
    {"target_max": 256},
    {"max_policy": "median"},
    {"rounding": "banker"},
    {"histogram_strategy": "sorted"},
    {"scan_block_size": 1},
    {"workgroup_size": 0},
    {"empty_channel": "skip"},
    {"device": "tpu"},
])
def test_invalid_settings(kwargs):
    with pytest.raises(ValueError):
        EqualizationSettings(**kwargs)
