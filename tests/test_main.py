"""Tests for main.py CLI functionality."""

from unittest.mock import patch

import pytest

from site_images.main import build_parser, main, read_directives
from site_images.testing.fakes import setup_test_site

CONFIG = """
image:
  source: assets
  presets:
    thumb:
      width: 100
      height: 100
"""


@pytest.fixture
def site_config(tmp_path):
    site = setup_test_site(tmp_path)
    config_path = site["site_source"] / "_config.yml"
    config_path.write_text(CONFIG, encoding="utf-8")
    return config_path, site


class TestMainCLI:
    """Tests for the main CLI functionality."""

    def test_main_with_no_args_shows_help(self):
        """Test that running main without arguments shows help."""
        with patch("sys.argv", ["site-images"]):
            with patch("argparse.ArgumentParser.print_help") as mock_help:
                with patch("sys.exit") as mock_exit:
                    main()
                    mock_help.assert_called_once()
                    mock_exit.assert_called_once_with(1)

    def test_main_version_command(self):
        """Test version command output."""
        with patch("sys.argv", ["site-images", "version"]):
            with patch("builtins.print") as mock_print:
                with patch("sys.exit") as mock_exit:
                    main()
                    mock_print.assert_any_call("Site Images CLI")
                    mock_print.assert_any_call("Version 0.1.0")
                    mock_print.assert_any_call(
                        "Resized, content-addressed images for static sites"
                    )
                    mock_exit.assert_called_once_with(0)

    def test_render_requires_config(self):
        """Test render without --config is a usage error."""
        with pytest.raises(SystemExit) as exc_info:
            main(["render", "poster.jpg"])
        assert exc_info.value.code == 2

    def test_render_prints_markup(self, site_config):
        """Test render prints one markup line per directive."""
        config_path, site = site_config
        with patch("builtins.print") as mock_print:
            with pytest.raises(SystemExit) as exc_info:
                main(
                    [
                        "render",
                        "--config",
                        str(config_path),
                        "--site-dest",
                        str(site["site_dest"]),
                        'thumb poster.jpg alt="P"',
                    ]
                )

        assert exc_info.value.code == 0
        markup = mock_print.call_args_list[0][0][0]
        assert markup.startswith('<img src="/generated/poster-100x100-')
        assert markup.endswith('alt="P" >')
        assert len(list((site["site_dest"] / "generated").iterdir())) == 1

    def test_render_exit_code_on_failure(self, site_config):
        """Test a failed directive prints an empty line and exits 1."""
        config_path, _ = site_config
        with patch("builtins.print") as mock_print:
            with pytest.raises(SystemExit) as exc_info:
                main(["render", "--config", str(config_path), "thumb missing.jpg", "thumb poster.jpg"])

        assert exc_info.value.code == 1
        assert mock_print.call_args_list[0][0][0] == ""
        assert mock_print.call_args_list[1][0][0].startswith("<img")

    def test_render_bad_config_exits_1(self, tmp_path):
        """Test configuration errors are reported with exit code 1."""
        config_path = tmp_path / "_config.yml"
        config_path.write_text("image: [unclosed\n", encoding="utf-8")
        with pytest.raises(SystemExit) as exc_info:
            main(["render", "--config", str(config_path), "poster.jpg"])
        assert exc_info.value.code == 1

    def test_render_with_multithread_processor(self, site_config):
        """Test the processor option selects the thread pool."""
        config_path, _ = site_config
        calls = []

        def fake_batch(directives, renderer):
            calls.append(directives)
            return []

        with patch.dict("site_images.main.PROCESSORS", {"multithread": ("Multithreaded", fake_batch)}):
            with pytest.raises(SystemExit) as exc_info:
                main(["render", "--config", str(config_path), "--processor", "multithread", "a.jpg"])

        assert calls == [["a.jpg"]]
        assert exc_info.value.code == 0

    def test_render_missing_directives_file_exits_1(self, site_config, tmp_path):
        """Test an unreadable --file is reported with exit code 1."""
        config_path, _ = site_config
        with pytest.raises(SystemExit) as exc_info:
            main(["render", "--config", str(config_path), "--file", str(tmp_path / "nope.txt")])
        assert exc_info.value.code == 1

    def test_keyboard_interrupt_exits_130(self, site_config):
        config_path, _ = site_config
        with patch("site_images.main.run_render", side_effect=KeyboardInterrupt):
            with pytest.raises(SystemExit) as exc_info:
                main(["render", "--config", str(config_path)])
        assert exc_info.value.code == 130


def test_read_directives_from_file(tmp_path):
    directives_file = tmp_path / "directives.txt"
    directives_file.write_text(
        "# gallery images\nthumb a.jpg\n\n  \n200x100 b.png alt=\"B\"\n", encoding="utf-8"
    )
    args = build_parser().parse_args(
        ["render", "--config", "c.yml", "--file", str(directives_file), "first.jpg"]
    )

    assert read_directives(args) == ["first.jpg", "thumb a.jpg", '200x100 b.png alt="B"']
