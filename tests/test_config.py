"""
Tests for config loading, layering and validation.
"""

import logging

import pytest
import yaml

from stepsight.errors import ConfigurationError
from stepsight.main import load_config, validate_config
from stepsight.models.config import Config, PipelineConfig
from stepsight.web.services.config_service import ConfigService


class TestConfigModel:

    def test_defaults(self):
        config = Config()

        assert config.pipeline.step_length_cm == 65.0
        assert config.pipeline.min_confidence == 0.6
        assert config.pipeline.alert_cooldown_s == 4.0
        assert config.scheduler.tick_interval_s == 1.2
        assert "person" in config.categories.critical
        assert config.detector.backend == "simulated"

    def test_round_trip_dict(self):
        config = Config.from_dict({"pipeline": {"step_length_cm": 72}, "detector": {"seed": 3}})

        again = Config.from_dict(config.to_dict())

        assert again == config
        assert again.pipeline.step_length_cm == 72
        assert again.detector.seed == 3

    def test_partial_sections_use_defaults(self):
        config = Config.from_dict({"pipeline": {"center_focus_only": False}, "categories": {"info": ["kiosk"]}})

        assert config.pipeline.step_length_cm == 65.0
        assert config.categories.info == ["kiosk"]
        assert config.categories.critical == Config().categories.critical


class TestConfigValidation:

    def test_valid_defaults(self):
        assert Config().validate() is not None

    @pytest.mark.parametrize("overrides", [
        {"pipeline": {"step_length_cm": 0}},
        {"pipeline": {"step_length_cm": -10}},
        {"pipeline": {"min_confidence": 1.5}},
        {"pipeline": {"center_fov_threshold": 0.6}},
        {"pipeline": {"alert_cooldown_ms": -1}},
        {"pipeline": {"track_history_size": 1}},
        {"scheduler": {"tick_interval_s": 0}},
        {"scheduler": {"gc_interval_ticks": 0}},
        {"categories": {"critical": []}},
        {"detector": {"backend": "sonar"}},
        {"log_level": "VERBOSE"},
    ])
    def test_invalid_values_rejected(self, overrides):
        with pytest.raises(ConfigurationError):
            Config.from_dict(overrides).validate()

    def test_step_length_outside_recommended_range_warns(self, caplog):
        config = Config(pipeline=PipelineConfig(step_length_cm=120))

        with caplog.at_level(logging.WARNING):
            config.validate()

        assert "recommended" in caplog.text
        assert config.pipeline.step_length_cm == 120

    def test_validate_config_wrapper(self):
        assert validate_config({}) == (True, None)

        is_valid, error = validate_config({"pipeline": {"step_length_cm": 0}})
        assert is_valid is False
        assert "step_length_cm" in error

    def test_validate_config_section_type(self):
        is_valid, error = validate_config({"pipeline": [1, 2]})
        assert is_valid is False
        assert "pipeline" in error


class TestLayeredConfig:

    def test_default_only(self, temp_config_dir):
        config = load_config(str(temp_config_dir / "config.yaml"))

        assert config["detector"]["seed"] == 7
        assert config["pipeline"]["step_length_cm"] == 65

    def test_overrides_deep_merge(self, temp_config_dir):
        (temp_config_dir / "config.yaml").write_text("pipeline:\n  step_length_cm: 80\n")

        config = load_config(str(temp_config_dir / "config.yaml"))

        assert config["pipeline"]["step_length_cm"] == 80
        assert config["pipeline"]["min_confidence"] == 0.6
        assert config["detector"]["backend"] == "simulated"

    def test_explicit_file_applied_last(self, temp_config_dir):
        (temp_config_dir / "config.yaml").write_text("pipeline:\n  step_length_cm: 80\n")
        explicit = temp_config_dir / "walk.yaml"
        explicit.write_text("pipeline:\n  step_length_cm: 58\nlog_level: DEBUG\n")

        config = load_config(str(explicit))

        assert config["pipeline"]["step_length_cm"] == 58
        assert config["log_level"] == "DEBUG"

    def test_merge_overrides_preserves_existing(self, temp_config_dir):
        service = ConfigService(str(temp_config_dir))
        service.save_overrides({"web": {"enabled": True}})

        service.merge_overrides({"pipeline": {"step_length_cm": 70}})

        saved = yaml.safe_load((temp_config_dir / "config.yaml").read_text())
        assert saved == {"web": {"enabled": True}, "pipeline": {"step_length_cm": 70}}

    def test_services_are_independent(self, tmp_path):
        """Each service reads and writes only its own directory."""
        first, second = tmp_path / "a", tmp_path / "b"
        first.mkdir()
        second.mkdir()
        (first / "default.yaml").write_text("pipeline:\n  step_length_cm: 60\n")
        (second / "default.yaml").write_text("pipeline:\n  step_length_cm: 90\n")

        ConfigService(str(first)).merge_overrides({"actuation": {"audio_enabled": False}})

        assert ConfigService(str(second)).load_effective_config()["pipeline"]["step_length_cm"] == 90
        assert ConfigService.for_config_file(str(first / "config.yaml")).load_effective_config() == {
            "pipeline": {"step_length_cm": 60},
            "actuation": {"audio_enabled": False},
        }
        assert not (second / "config.yaml").exists()
