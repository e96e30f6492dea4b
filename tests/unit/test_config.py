"""
Test: configuration loading (defaults, YAML, environment) and logging setup
"""

import logging

import pytest
import yaml

from lazytrace import (
    ConfigurationError,
    IRConfig,
    LazyTraceConfig,
    LogLevel,
    LoggingConfig,
    TraceSession,
    configure_logging,
    get_config,
    load_config,
    set_config,
)

ENV_VARS = [
    'LTC_IR_SHAPE_CACHE_SIZE',
    'LTC_DYNAMIC_SHAPES',
    'LTC_IR_DEBUG',
    'LTC_IR_MAX_FRAMES',
    'LTC_LOG_LEVEL',
    'LTC_LOG_FORMAT',
]


@pytest.fixture
def clean_env(monkeypatch):
    for name in ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


class TestDefaults:

    def test_values(self):
        config = LazyTraceConfig()
        assert config.ir.shape_cache_size == 4096
        assert config.ir.dynamic_shapes is False
        assert config.ir.record_frame_info is False
        assert config.ir.max_frame_depth == 8
        assert config.logging.level == LogLevel.WARNING

    @pytest.mark.parametrize("kwargs", [
        dict(shape_cache_size=0),
        dict(shape_cache_size=-4),
        dict(max_frame_depth=-1),
    ])
    def test_invalid_values(self, kwargs):
        with pytest.raises(ConfigurationError):
            IRConfig(**kwargs)


class TestEnvironment:

    def test_ir_from_env(self, clean_env):
        clean_env.setenv('LTC_IR_SHAPE_CACHE_SIZE', '128')
        clean_env.setenv('LTC_DYNAMIC_SHAPES', '1')
        clean_env.setenv('LTC_IR_DEBUG', 'true')
        clean_env.setenv('LTC_IR_MAX_FRAMES', '3')
        config = IRConfig.from_env()
        assert config.shape_cache_size == 128
        assert config.dynamic_shapes is True
        assert config.record_frame_info is True
        assert config.max_frame_depth == 3

    def test_env_keeps_base_when_unset(self, clean_env):
        config = IRConfig.from_env(IRConfig(shape_cache_size=10))
        assert config.shape_cache_size == 10

    @pytest.mark.parametrize("value", ['lots', '0'])
    def test_bad_cache_size(self, clean_env, value):
        clean_env.setenv('LTC_IR_SHAPE_CACHE_SIZE', value)
        with pytest.raises(ConfigurationError):
            IRConfig.from_env()

    def test_log_level(self, clean_env):
        clean_env.setenv('LTC_LOG_LEVEL', 'DEBUG')
        assert LoggingConfig.from_env().level == LogLevel.DEBUG

    def test_bad_log_level(self, clean_env):
        clean_env.setenv('LTC_LOG_LEVEL', 'loud')
        with pytest.raises(ConfigurationError):
            LoggingConfig.from_env()


class TestYaml:

    def test_load(self, clean_env, tmp_path):
        path = tmp_path / "lazytrace.yaml"
        path.write_text(yaml.safe_dump({
            'ir': {'shape_cache_size': 32, 'dynamic_shapes': True},
            'logging': {'level': 'INFO'},
        }))
        config = load_config(str(path))
        assert config.ir.shape_cache_size == 32
        assert config.ir.dynamic_shapes is True
        assert config.logging.level == LogLevel.INFO
        assert config.config_file == str(path)

    def test_env_overrides_yaml(self, clean_env, tmp_path):
        path = tmp_path / "lazytrace.yaml"
        path.write_text(yaml.safe_dump({'ir': {'shape_cache_size': 32}}))
        clean_env.setenv('LTC_IR_SHAPE_CACHE_SIZE', '64')
        assert load_config(str(path)).ir.shape_cache_size == 64

    def test_save_and_reload(self, clean_env, tmp_path):
        path = tmp_path / "saved.yaml"
        config = LazyTraceConfig(ir=IRConfig(shape_cache_size=99, record_frame_info=True))
        config.save(str(path))
        reloaded = LazyTraceConfig.load(str(path))
        assert reloaded.to_dict() == config.to_dict()

    def test_unknown_key(self, clean_env, tmp_path):
        path = tmp_path / "bad.yaml"
        path.write_text(yaml.safe_dump({'ir': {'cache_capacity': 32}}))
        with pytest.raises(ConfigurationError):
            load_config(str(path))

    def test_missing_file_uses_defaults(self, clean_env, tmp_path):
        config = load_config(str(tmp_path / "missing.yaml"))
        assert config.ir.shape_cache_size == 4096
        assert config.config_file is None


class TestGlobalConfig:

    def test_set_and_get(self):
        config = LazyTraceConfig(ir=IRConfig(shape_cache_size=11))
        set_config(config)
        assert get_config() is config

    def test_session_capacity_from_config(self):
        config = LazyTraceConfig(ir=IRConfig(shape_cache_size=5))
        assert TraceSession(config=config).shape_cache.capacity == 5
        set_config(config)
        assert TraceSession().shape_cache.capacity == 5


class TestConfigureLogging:

    def test_applies_level_and_handler(self):
        package_logger = logging.getLogger('lazytrace')
        handlers = list(package_logger.handlers)
        level = package_logger.level
        try:
            config = LazyTraceConfig(logging=LoggingConfig(level=LogLevel.DEBUG))
            result = configure_logging(config)
            assert result is package_logger
            assert package_logger.level == logging.DEBUG
            assert any(isinstance(h, logging.StreamHandler) and not isinstance(h, logging.NullHandler)
                       for h in package_logger.handlers)
        finally:
            package_logger.handlers = handlers
            package_logger.setLevel(level)
