#!/usr/bin/env python3
"""
Tests for site template lookup and rendering.
"""

import shutil
import tempfile
import unittest
from pathlib import Path

from docbuilder import templates
from docbuilder.templates import (DocsifyOptions, default_template, docsify_template, register_template,
                                  render_template, resolve_template)


class TestDocsifyTemplate(unittest.TestCase):

    def test_options_are_embedded(self):
        """Test docsify options are written into the page."""
        html = docsify_template(DocsifyOptions(name='Guide', repo='me/guide', homepage='Start.md',
                                               stylesheet='theme.css'))
        self.assertIn('<title>Guide</title>', html)
        self.assertIn('href="theme.css"', html)
        self.assertIn('"loadSidebar": true', html)
        self.assertIn('"repo": "me/guide"', html)
        self.assertIn('"homepage": "Start.md"', html)
        self.assertIn('search.min.js', html)

    def test_search_can_be_disabled(self):
        """Test the search plugin is omitted when disabled."""
        html = docsify_template(DocsifyOptions(name='Guide', support_search=False))
        self.assertNotIn('search.min.js', html)


class TestResolveTemplate(unittest.TestCase):

    def setUp(self):
        self.test_dir = tempfile.mkdtemp()
        self.saved = dict(templates._TEMPLATES)
        self.options = DocsifyOptions(name='Guide')

    def tearDown(self):
        templates._TEMPLATES.clear()
        templates._TEMPLATES.update(self.saved)
        shutil.rmtree(self.test_dir)

    def write_module(self, body):
        path = Path(self.test_dir) / 'custom_shell.py'
        path.write_text(body)
        return path

    def test_empty_reference_gives_default(self):
        """Test an empty reference selects the default template."""
        self.assertIs(resolve_template(''), default_template())
        self.assertIs(resolve_template(None), default_template())

    def test_registered_name(self):
        """Test a registered template is found by name."""
        def shell(options):
            return f"<p>{options.name}</p>"

        register_template('plain', shell)
        self.assertIs(resolve_template('plain'), shell)

    def test_register_rejects_non_callable(self):
        """Test only callables can be registered."""
        with self.assertRaises(TypeError):
            register_template('broken', 'not a function')

    def test_file_reference(self):
        """Test a path/to/file.py:function reference is loaded."""
        path = self.write_module('def render(options):\n    return "<html>" + options.name + "</html>"\n')
        template = resolve_template(f"{path}:render")
        self.assertEqual(render_template(template, self.options), '<html>Guide</html>')

    def test_missing_module_falls_back_with_error(self):
        """Test an unimportable module logs an error."""
        with self.assertLogs('docbuilder.templates', level='ERROR'):
            template = resolve_template('no_such_shell_module:render')
        self.assertIs(template, default_template())

    def test_missing_export_falls_back_with_warning(self):
        """Test a module without the function logs a warning."""
        path = self.write_module('value = 1\n')
        with self.assertLogs('docbuilder.templates', level='WARNING') as logs:
            template = resolve_template(f"{path}:render")
        self.assertIs(template, default_template())
        self.assertIn('missing the expected export', logs.output[0])

    def test_unknown_name_falls_back(self):
        """Test an unknown template name falls back."""
        with self.assertLogs('docbuilder.templates', level='WARNING'):
            self.assertIs(resolve_template('fancy'), default_template())


class TestRenderTemplate(unittest.TestCase):

    def setUp(self):
        self.options = DocsifyOptions(name='Guide')

    def test_non_text_result_falls_back(self):
        """Test a template returning non-text falls back."""
        with self.assertLogs('docbuilder.templates', level='ERROR'):
            html = render_template(lambda options: 42, self.options)
        self.assertEqual(html, docsify_template(self.options))

    def test_exception_falls_back(self):
        """Test a template that raises falls back."""
        def explode(options):
            raise RuntimeError('bad template')

        with self.assertLogs('docbuilder.templates', level='ERROR'):
            html = render_template(explode, self.options)
        self.assertEqual(html, docsify_template(self.options))


if __name__ == '__main__':
    unittest.main()
