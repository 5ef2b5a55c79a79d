#!/usr/bin/env python3
"""
Tests for the content-hash build cache.
"""

import json
import shutil
import tempfile
import unittest
from pathlib import Path

from docbuilder.cache import ContentCache


class TestContentCache(unittest.TestCase):
    """Change detection across builds."""

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.test_path = Path(self.test_dir)
        self.cache_file = self.test_path / '.cache.json'
        self.source = self.test_path / 'page.md'
        self.source.write_text('# Page\n\nContent')
        self.cache = ContentCache(self.cache_file)

    def tearDown(self):
        shutil.rmtree(self.test_dir)

    def test_unprocessed_file_has_changed(self):
        """Test a file never marked counts as changed."""
        self.cache.load_cache()
        self.assertTrue(self.cache.has_changed(self.source))

    def test_processed_file_survives_reload(self):
        """hasChanged is false after markProcessed, persist and reload."""
        self.cache.mark_processed(self.source)
        self.assertFalse(self.cache.has_changed(self.source))
        self.cache.persist()

        reloaded = ContentCache(self.cache_file)
        reloaded.load_cache()
        self.assertFalse(reloaded.has_changed(self.source))

    def test_modified_bytes_are_detected(self):
        """Test editing a file invalidates its hash."""
        self.cache.mark_processed(self.source)
        self.source.write_text('# Page\n\nModified content')
        self.assertTrue(self.cache.has_changed(self.source))

    def test_relative_and_absolute_paths_share_an_entry(self):
        """Test relative and absolute spellings hit the same entry."""
        self.cache.mark_processed(self.source)
        self.assertIn(str(self.source.absolute()), self.cache.files)

    def test_persisted_format(self):
        """Test the cache file holds a version and a files map."""
        self.cache.mark_processed(self.source)
        self.cache.persist()
        data = json.loads(self.cache_file.read_text())
        self.assertEqual(data['version'], 1)
        digest = data['files'][str(self.source.absolute())]
        self.assertEqual(len(digest), 64)

    def test_missing_file_counts_as_changed(self):
        """Test an unreadable source counts as changed."""
        missing = self.test_path / 'missing.md'
        with self.assertLogs('docbuilder.cache', level='WARNING'):
            self.assertTrue(self.cache.has_changed(missing))

    def test_mark_processed_ignores_unreadable_file(self):
        """Test an unreadable source is not recorded."""
        with self.assertLogs('docbuilder.cache', level='WARNING'):
            self.cache.mark_processed(self.test_path / 'missing.md')
        self.assertEqual(self.cache.files, {})

    def test_missing_cache_file_loads_empty(self):
        """Test a missing cache file gives an empty cache."""
        self.cache.load_cache()
        self.assertEqual(self.cache.files, {})

    def test_empty_cache_file_is_ignored(self):
        """Test an empty cache file is ignored with a warning."""
        self.cache_file.write_text('')
        with self.assertLogs('docbuilder.cache', level='WARNING'):
            self.cache.load_cache()
        self.assertEqual(self.cache.files, {})

    def test_corrupt_cache_file_is_ignored(self):
        """Test invalid JSON is ignored with a warning."""
        self.cache_file.write_text('{not json')
        with self.assertLogs('docbuilder.cache', level='WARNING'):
            self.cache.load_cache()
        self.assertEqual(self.cache.files, {})

    def test_version_mismatch_discards_everything(self):
        """Test a cache from another version is discarded."""
        self.cache_file.write_text(json.dumps({'version': 2, 'files': {str(self.source): 'abc'}}))
        with self.assertLogs('docbuilder.cache', level='WARNING'):
            self.cache.load_cache()
        self.assertEqual(self.cache.files, {})

    def test_malformed_files_discards_everything(self):
        """Test a cache with bad entries is discarded."""
        self.cache_file.write_text(json.dumps({'version': 1, 'files': ['a', 'b']}))
        with self.assertLogs('docbuilder.cache', level='WARNING'):
            self.cache.load_cache()
        self.assertEqual(self.cache.files, {})

    def test_persist_failure_is_logged(self):
        """Test a failed write is logged instead of raised."""
        blocker = self.test_path / 'blocker'
        blocker.write_text('')
        cache = ContentCache(blocker / 'cache.json')
        with self.assertLogs('docbuilder.cache', level='ERROR'):
            cache.persist()

    def test_clear_removes_cache_file(self):
        """Test clear forgets hashes and deletes the file."""
        self.cache.mark_processed(self.source)
        self.cache.persist()
        self.cache.clear()
        self.assertFalse(self.cache_file.exists())
        self.assertTrue(self.cache.has_changed(self.source))


if __name__ == '__main__':
    unittest.main()
