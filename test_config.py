#!/usr/bin/env python3
"""
Tests for loading, saving and editing the build configuration.
"""

import json
import shutil
import tempfile
import unittest
from pathlib import Path

from docbuilder.config import (BuildConfig, ConfigError, config_from_mapping, is_unset, load_config, save_config,
                               set_config_value)


class TestBuildConfig(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.config_file = Path(self.test_dir) / '.docbuilder'

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_missing_file_gives_defaults(self):
        """Test a missing configuration file gives defaults."""
        self.assertEqual(load_config(self.config_file), BuildConfig())

    def test_save_and_load(self):
        """Test settings round-trip through camelCase JSON."""
        config = BuildConfig(project_name='Manual', dist_folder='site', web_search=False)
        save_config(config, self.config_file)

        data = json.loads(self.config_file.read_text())
        self.assertEqual(data['projectName'], 'Manual')
        self.assertEqual(data['distFolder'], 'site')
        self.assertIs(data['webSearch'], False)
        self.assertNotIn('generateWebsite', data)

        self.assertEqual(load_config(self.config_file), config)

    def test_unknown_keys_are_ignored(self):
        """Test keys from other tools are ignored."""
        config = config_from_mapping({'projectName': 'X', 'serveDocs': True})
        self.assertEqual(config.project_name, 'X')

    def test_bad_boolean_falls_back_to_default(self):
        """Test an invalid boolean keeps the default."""
        with self.assertLogs('docbuilder.config', level='WARNING'):
            config = config_from_mapping({'webSearch': 'maybe'})
        self.assertTrue(config.web_search)

    def test_invalid_json_raises(self):
        """Test invalid JSON raises ConfigError."""
        self.config_file.write_text('{not json')
        with self.assertRaises(ConfigError):
            load_config(self.config_file)

    def test_non_object_raises(self):
        """Test a JSON array raises ConfigError."""
        self.config_file.write_text('[1, 2]')
        with self.assertRaises(ConfigError):
            load_config(self.config_file)

    def test_set_value_by_either_name(self):
        """Test keys are accepted in either spelling."""
        config = set_config_value(BuildConfig(), 'distFolder', 'public')
        self.assertEqual(config.dist_folder, 'public')
        config = set_config_value(config, 'embed_mermaid_diagrams', 'yes')
        self.assertTrue(config.embed_mermaid_diagrams)

    def test_set_value_does_not_mutate(self):
        """Test setting a value returns a new config."""
        original = BuildConfig()
        set_config_value(original, 'projectName', 'Other')
        self.assertEqual(original.project_name, 'Documentation')

    def test_set_unknown_or_internal_key(self):
        """Test unknown and internal keys are rejected."""
        with self.assertRaises(KeyError):
            set_config_value(BuildConfig(), 'noSuchKey', 'x')
        with self.assertRaises(KeyError):
            set_config_value(BuildConfig(), 'generate_website', 'yes')

    def test_set_bad_boolean(self):
        """Test an invalid boolean is rejected."""
        with self.assertRaises(ValueError):
            set_config_value(BuildConfig(), 'webSearch', 'perhaps')

    def test_dsl_settings(self):
        """Test the Structurizr settings are stored and the CLI choice is checked."""
        config = set_config_value(BuildConfig(), 'dslCli', ' docker ')
        self.assertEqual(config.dsl_cli, 'docker')
        config = set_config_value(config, 'workspaceDsl', 'model.dsl')
        self.assertEqual(config.to_mapping()['workspaceDsl'], 'model.dsl')
        with self.assertRaises(ValueError):
            set_config_value(config, 'dslCli', 'podman')

    def test_bad_dsl_cli_in_file_keeps_default(self):
        """Test an unknown dslCli in the file keeps structurizr-cli."""
        with self.assertLogs('docbuilder.config', level='WARNING'):
            config = config_from_mapping({'dslCli': 'podman'})
        self.assertEqual(config.dsl_cli, 'structurizr-cli')

    def test_is_unset(self):
        self.assertTrue(is_unset(''))
        self.assertTrue(is_unset('  '))
        self.assertTrue(is_unset('undefined'))
        self.assertTrue(is_unset(None))
        self.assertFalse(is_unset('docs'))


if __name__ == '__main__':
    unittest.main()
