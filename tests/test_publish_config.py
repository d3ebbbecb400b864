"""Tests for configuration loading."""

import json

import pytest

from publish_config import DEFAULT_CONFIG, load_config


class TestLoadConfig:
    def test_missing_file_returns_defaults(self, tmp_path):
        config = load_config(str(tmp_path / 'nope.json'))
        assert config == DEFAULT_CONFIG
        assert config is not DEFAULT_CONFIG

    def test_partial_config_is_merged_over_defaults(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({'posts_directory': 'posts', 'toc': {'max_level': 4}}))

        config = load_config(str(path))

        assert config['posts_directory'] == 'posts'
        assert config['toc']['max_level'] == 4
        assert config['toc']['min_level'] == 2
        assert config['site']['permalink'] == '/:year/:month/:day/:title.html'

    def test_defaults_are_not_mutated(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text(json.dumps({'lint': {'disabled_rules': ['fence-language']}}))

        load_config(str(path))

        assert DEFAULT_CONFIG['lint']['disabled_rules'] == []

    def test_invalid_json_raises(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('{not json')
        with pytest.raises(ValueError, match='Invalid JSON'):
            load_config(str(path))

    def test_non_object_raises(self, tmp_path):
        path = tmp_path / 'config.json'
        path.write_text('[1, 2]')
        with pytest.raises(ValueError, match='JSON object'):
            load_config(str(path))
