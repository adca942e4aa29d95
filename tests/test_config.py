# bucketmirror Config Tests
# Tests for configuration loading and validation

from pathlib import Path

import pytest
import yaml
from pydantic import ValidationError

from bucketmirror.config.defaults import DEFAULT_CONFIG, generate_default_config
from bucketmirror.config.loader import (
    ensure_config_exists,
    get_config_path,
    load_config,
    save_config,
    validate_config_file,
)
from bucketmirror.config.schema import MirrorConfig, StoreBackend, StoreConfig, SyncConfig


class TestMirrorConfig:
    """Tests for MirrorConfig schema."""

    def test_minimal_config(self, temp_dir: Path):
        """Test minimal valid configuration."""
        config = MirrorConfig(watch_root=str(temp_dir), store={"bucket": "b"})
        assert config.watch_root_path == temp_dir
        assert config.store.backend == StoreBackend.S3
        assert config.sync.interval_seconds == 300
        assert config.sync.sweep_on_start is True
        assert config.sync.exclude == []

    def test_full_config(self, sample_config: dict, watch_root: Path):
        """Test full configuration loading."""
        config = MirrorConfig.model_validate(sample_config)

        assert config.watch_root_path == watch_root
        assert config.store.backend == StoreBackend.LOCAL
        assert config.sync.exclude == ["*.tmp"]

    def test_watch_root_expansion(self, temp_home: Path):
        """Test that ~ is expanded in the watch root."""
        config = MirrorConfig(watch_root="~/Backup", store={"bucket": "b"})
        assert config.watch_root == str((temp_home / "Backup").resolve())

    def test_empty_bucket_rejected(self):
        """Test that a blank bucket name fails validation."""
        with pytest.raises(ValidationError):
            StoreConfig(bucket="  ")

    def test_interval_must_be_positive(self):
        """Test that a zero interval fails validation."""
        with pytest.raises(ValidationError):
            SyncConfig(interval_seconds=0)


class TestStoreConfig:
    """Tests for StoreConfig endpoint handling."""

    def test_endpoint_url_adds_http(self):
        """Test plain endpoints get an http scheme."""
        config = StoreConfig(bucket="b", endpoint="localhost:9000")
        assert config.endpoint_url == "http://localhost:9000"

    def test_endpoint_url_adds_https_when_secure(self):
        """Test secure endpoints get an https scheme."""
        config = StoreConfig(bucket="b", endpoint="minio.example.com", secure=True)
        assert config.endpoint_url == "https://minio.example.com"

    def test_endpoint_url_keeps_scheme(self):
        """Test an explicit scheme is kept."""
        config = StoreConfig(bucket="b", endpoint="https://s3.example.com:8443")
        assert config.endpoint_url == "https://s3.example.com:8443"

    def test_no_endpoint(self):
        """Test no endpoint means the SDK default."""
        config = StoreConfig(bucket="b")
        assert config.endpoint_url is None


class TestConfigLoader:
    """Tests for configuration loading."""

    def test_load_config(self, config_file: Path, watch_root: Path):
        """Test loading configuration from file."""
        config = load_config(config_file)
        assert config.watch_root_path == watch_root
        assert config.store.bucket == "mirror"
        assert config.sync.poll_timeout == 0.05

    def test_load_missing_config(self, temp_dir: Path):
        """Test loading non-existent config raises error."""
        with pytest.raises(FileNotFoundError, match="config init"):
            load_config(temp_dir / "nonexistent.yaml")

    def test_load_merges_defaults(self, temp_dir: Path, watch_root: Path):
        """Test that missing sections are filled from defaults."""
        path = temp_dir / "partial.yaml"
        path.write_text(yaml.dump({"watch_root": str(watch_root), "store": {"bucket": "x"}}), encoding="utf-8")

        config = load_config(path)
        assert config.store.bucket == "x"
        assert config.store.endpoint == DEFAULT_CONFIG["store"]["endpoint"]
        assert config.sync.interval_seconds == DEFAULT_CONFIG["sync"]["interval_seconds"]

    def test_load_rejects_scalar_section(self, temp_dir: Path, watch_root: Path):
        """Test a section that is not a mapping raises ValueError."""
        path = temp_dir / "scalar.yaml"
        path.write_text(yaml.dump({"watch_root": str(watch_root), "store": "foo"}), encoding="utf-8")

        with pytest.raises(ValueError, match="'store' must be a mapping"):
            load_config(path)

    def test_load_rejects_scalar_root(self, temp_dir: Path):
        """Test a file holding a bare scalar raises ValueError."""
        path = temp_dir / "root.yaml"
        path.write_text("just a string\n", encoding="utf-8")

        with pytest.raises(ValueError, match="root must be a mapping"):
            load_config(path)

    def test_env_credentials_override(self, config_file: Path, monkeypatch: pytest.MonkeyPatch):
        """Test that credentials can come from the environment."""
        monkeypatch.setenv("BUCKETMIRROR_ACCESS_KEY", "env-access")
        monkeypatch.setenv("BUCKETMIRROR_SECRET_KEY", "env-secret")

        config = load_config(config_file)
        assert config.store.access_key == "env-access"
        assert config.store.secret_key == "env-secret"

    def test_config_path_from_env(self, temp_dir: Path, monkeypatch: pytest.MonkeyPatch):
        """Test BUCKETMIRROR_CONFIG overrides the default location."""
        monkeypatch.setenv("BUCKETMIRROR_CONFIG", str(temp_dir / "custom.yaml"))
        assert get_config_path() == temp_dir / "custom.yaml"

    def test_default_config_path(self, temp_home: Path):
        """Test default config location under ~/.config."""
        assert get_config_path() == temp_home / ".config" / "bucketmirror" / "config.yaml"

    def test_save_config(self, temp_dir: Path, sample_config: dict):
        """Test saving configuration to file."""
        config = MirrorConfig.model_validate(sample_config)
        config_path = temp_dir / "saved.yaml"

        save_config(config, config_path)

        assert config_path.exists()
        loaded = load_config(config_path)
        assert loaded.store.bucket == config.store.bucket
        assert loaded.store.backend == StoreBackend.LOCAL

    def test_ensure_config_exists(self, temp_dir: Path):
        """Test default file is created once."""
        path = temp_dir / "cfg" / "config.yaml"

        created_path, created = ensure_config_exists(path)
        assert created is True
        assert created_path.read_text(encoding="utf-8") == generate_default_config()

        _, created_again = ensure_config_exists(path)
        assert created_again is False


class TestConfigValidation:
    """Tests for configuration validation."""

    def test_validate_valid_config(self, config_file: Path):
        """Test validating a valid config file."""
        is_valid, errors = validate_config_file(config_file)
        assert is_valid is True
        assert errors == []

    def test_validate_missing_file(self, temp_dir: Path):
        """Test validating non-existent file."""
        is_valid, errors = validate_config_file(temp_dir / "missing.yaml")
        assert is_valid is False
        assert "not found" in errors[0]

    def test_validate_invalid_yaml(self, temp_dir: Path):
        """Test validating invalid YAML."""
        config_path = temp_dir / "invalid.yaml"
        config_path.write_text("invalid: yaml: syntax:", encoding="utf-8")

        is_valid, errors = validate_config_file(config_path)
        assert is_valid is False
        assert "YAML" in errors[0]

    def test_validate_empty_file(self, temp_dir: Path):
        """Test validating an empty file."""
        config_path = temp_dir / "empty.yaml"
        config_path.write_text("", encoding="utf-8")

        is_valid, errors = validate_config_file(config_path)
        assert is_valid is False
        assert "empty" in errors[0]

    def test_validate_schema_error(self, temp_dir: Path, sample_config: dict):
        """Test schema errors are reported with their location."""
        sample_config["sync"]["interval_seconds"] = 0
        config_path = temp_dir / "bad.yaml"
        config_path.write_text(yaml.dump(sample_config), encoding="utf-8")

        is_valid, errors = validate_config_file(config_path)
        assert is_valid is False
        assert any(e.startswith("sync -> interval_seconds") for e in errors)

    def test_validate_scalar_section(self, temp_dir: Path, sample_config: dict):
        """Test a non-mapping section is reported instead of raised."""
        sample_config["sync"] = 5
        config_path = temp_dir / "scalar.yaml"
        config_path.write_text(yaml.dump(sample_config), encoding="utf-8")

        is_valid, errors = validate_config_file(config_path)
        assert is_valid is False
        assert errors == ["Configuration section 'sync' must be a mapping"]

    def test_validate_missing_watch_root(self, temp_dir: Path, sample_config: dict):
        """Test a watch root that does not exist is reported."""
        sample_config["watch_root"] = str(temp_dir / "nope")
        config_path = temp_dir / "noroot.yaml"
        config_path.write_text(yaml.dump(sample_config), encoding="utf-8")

        is_valid, errors = validate_config_file(config_path)
        assert is_valid is False
        assert "watch_root" in errors[0]

    def test_validate_local_backend_needs_path(self, temp_dir: Path, sample_config: dict):
        """Test local backend without local_path is reported."""
        del sample_config["store"]["local_path"]
        config_path = temp_dir / "nolocal.yaml"
        config_path.write_text(yaml.dump(sample_config), encoding="utf-8")

        is_valid, errors = validate_config_file(config_path)
        assert is_valid is False
        assert any("local_path" in e for e in errors)


class TestDefaults:
    """Tests for default configuration."""

    def test_default_config_structure(self):
        """Test default config has required sections."""
        assert "watch_root" in DEFAULT_CONFIG
        assert "store" in DEFAULT_CONFIG
        assert "sync" in DEFAULT_CONFIG
        assert "output" in DEFAULT_CONFIG

    def test_generate_default_config(self):
        """Test generating default config YAML."""
        yaml_content = generate_default_config()

        assert "# bucketmirror Configuration" in yaml_content
        data = yaml.safe_load(yaml_content)
        assert data["store"]["bucket"] == "bucketmirror"
        assert data["sync"]["sweep_on_start"] is True

    def test_default_config_validates(self, temp_home: Path):
        """Test the generated default config passes the schema."""
        config = MirrorConfig.model_validate(yaml.safe_load(generate_default_config()))
        assert config.store.endpoint_url == "http://localhost:9000"
