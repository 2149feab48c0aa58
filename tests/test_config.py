"""Tests for config loading."""

import pytest

from recruit_analysis.config import AppConfig, CacheConfig, LLMConfig, QueueConfig, load_config


class TestConfig:
    def test_defaults(self):
        config = AppConfig()
        assert config.llm.model == "claude-haiku-4-5-20251001"
        assert config.llm.max_retries == 3
        assert config.llm.timeout == 60.0
        assert config.cache.ttl_seconds == 3600
        assert config.pipeline.max_attempts == 3
        assert config.queue.max_attempts == 3
        assert config.queue.backoff_base == 2.0

    def test_load_config_defaults(self, tmp_path):
        """Loading from non-existent path returns defaults."""
        config = load_config(tmp_path / "nonexistent.yaml")
        assert config.queue.concurrency == 4
        assert config.cache.fingerprint_chars == 8192

    def test_load_config_from_yaml(self, tmp_path):
        yaml_path = tmp_path / "config.yaml"
        yaml_path.write_text(
            "llm:\n  model: test-model\n  backoff: linear\n"
            "pipeline:\n  max_attempts: 5\n"
            "queue:\n  concurrency: 2\n"
        )
        config = load_config(yaml_path)
        assert config.llm.model == "test-model"
        assert config.llm.backoff == "linear"
        assert config.pipeline.max_attempts == 5
        assert config.queue.concurrency == 2
        # Defaults for unspecified
        assert config.llm.max_retries == 3
        assert config.queue.job_timeout == 900.0

    def test_empty_yaml_gives_defaults(self, tmp_path):
        yaml_path = tmp_path / "config.yaml"
        yaml_path.write_text("")
        assert load_config(yaml_path) == AppConfig()

    def test_unknown_key_rejected(self, tmp_path):
        yaml_path = tmp_path / "config.yaml"
        yaml_path.write_text("llm:\n  no_such_option: 1\n")
        with pytest.raises(TypeError):
            load_config(yaml_path)

    def test_resolved_paths(self):
        assert "~" not in str(CacheConfig(db_path="~/test.db").resolved_db_path)
        assert "~" not in str(QueueConfig(db_path="~/queue.db").resolved_db_path)

    def test_frozen_config(self):
        config = LLMConfig()
        with pytest.raises(AttributeError):
            config.model = "changed"


class TestJobTimeout:
    def test_default_timeout_covers_generation_budget(self):
        config = AppConfig()
        # 4 client calls x 3 attempts x (60s timeout + 10s backoff)
        assert config.generation_budget() == 840.0
        assert config.effective_job_timeout() == config.queue.job_timeout == 900.0

    def test_short_timeout_is_raised(self):
        config = AppConfig(
            llm=LLMConfig(timeout=60.0, max_retries=3, backoff_max=10.0),
            queue=QueueConfig(job_timeout=300.0, job_timeout_margin=30.0),
        )
        assert config.effective_job_timeout() == 870.0

    def test_generous_timeout_kept(self):
        config = AppConfig(queue=QueueConfig(job_timeout=3600.0))
        assert config.effective_job_timeout() == 3600.0
