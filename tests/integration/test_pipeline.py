"""Integration tests for the complete rendering pipeline."""

import warnings

import pytest
from PIL import Image

from site_images.core.config import load_config
from site_images.core.exceptions import UpscaleClamped
from site_images.core.factories import RendererFactory
from site_images.core.observability import MetricsCollector
from site_images.core.services import KeepFilesRegistry
from site_images.processors import multithread_process_batch, serial_process_batch
from site_images.testing.fakes import FakeLogger, setup_test_site

CONFIG = """
title: Test site
baseurl: ""
image:
  source: assets
  output: generated
  markup: {markup}
  presets:
    gallery:
      width: 300
      height: 200
      attr:
        class: gal-img
        data-selected:
    hero:
      attr:
        data-alt: Hero
      source_default:
        width: 400
      source_small:
        width: 200
        media: "(max-width: 600px)"
"""


@pytest.fixture
def site(tmp_path):
    return setup_test_site(tmp_path)


def build_renderer(tmp_path, site, markup="img", metrics=None, keep_files=None):
    config_path = tmp_path / "_config.yml"
    config_path.write_text(CONFIG.format(markup=markup), encoding="utf-8")
    config = load_config(config_path, site_source=site["site_source"], site_dest=site["site_dest"])
    return RendererFactory.create_renderer(
        config, keep_files=keep_files, logger=FakeLogger(), metrics_collector=metrics
    )


def output_files(site):
    return sorted(p for p in (site["site_dest"] / "generated").rglob("*") if p.is_file())


class TestPipelineIntegration:
    """Integration tests for directive rendering with the Pillow codec."""

    def test_end_to_end_img(self, tmp_path, site):
        keep_files = KeepFilesRegistry()
        renderer = build_renderer(tmp_path, site, keep_files=keep_files)

        markup = renderer.render('gallery poster.jpg alt="Poster"')

        assert markup.startswith('<img src="/generated/poster-300x200-')
        assert markup.endswith('.jpg" class="gal-img" data-selected alt="Poster" >')
        files = output_files(site)
        assert len(files) == 1
        with Image.open(files[0]) as generated:
            assert generated.size == (300, 200)
        assert keep_files.entries == ["generated"]

    def test_scenario_width_only(self, tmp_path, site):
        renderer = build_renderer(tmp_path, site)

        result = renderer.process("400xAUTO poster.jpg")

        assert result.success
        assert result.clamped is False
        plan = result.assets[0].plan
        assert (plan.target_width, plan.target_height) == (400, 300)

    def test_scenario_clamped(self, tmp_path, site):
        renderer = build_renderer(tmp_path, site)

        with pytest.warns(UpscaleClamped):
            result = renderer.process("2000x1000 poster.jpg")

        assert result.success
        assert result.clamped is True
        with Image.open(result.assets[0].absolute_output_path) as generated:
            assert generated.size == (800, 400)

    def test_second_build_generates_nothing(self, tmp_path, site):
        metrics = MetricsCollector()
        directives = ["400xAUTO poster.jpg", "AUTOx50 photos/wide.jpg", "photos/tall.png"]

        first = serial_process_batch(directives, build_renderer(tmp_path, site, metrics=metrics))
        second = serial_process_batch(directives, build_renderer(tmp_path, site, metrics=metrics))

        assert [r.markup for r in first] == [r.markup for r in second]
        assert all(a.generated for r in first for a in r.assets)
        assert not any(a.generated for r in second for a in r.assets)
        assert metrics.count("generate") == 3
        assert metrics.count("cache_hit") == 3

    def test_subdirectories_mirrored(self, tmp_path, site):
        renderer = build_renderer(tmp_path, site)

        markup = renderer.render("AUTOx50 photos/wide.jpg")

        assert '"/generated/photos/wide-200x50-' in markup
        assert (site["site_dest"] / "generated" / "photos").is_dir()

    def test_png_keeps_format(self, tmp_path, site):
        renderer = build_renderer(tmp_path, site)

        result = renderer.process("60x60 photos/tall.png")

        with Image.open(result.assets[0].absolute_output_path) as generated:
            assert generated.format == "PNG"
            assert generated.size == (60, 60)

    def test_unknown_preset_writes_nothing(self, tmp_path, site):
        renderer = build_renderer(tmp_path, site)

        result = renderer.process("galery poster.jpg")

        assert result.success is False
        assert result.error_type == "UnknownPreset"
        assert "galery" in result.error
        assert not (site["site_dest"] / "generated").exists()

    def test_batch_continues_after_failures(self, tmp_path, site):
        renderer = build_renderer(tmp_path, site)
        directives = ["missing.jpg", "not a directive", "100xAUTO poster.jpg", "notes.txt"]

        results = serial_process_batch(directives, renderer)

        assert [r.success for r in results] == [False, False, True, False]
        assert results[0].error_type == "SourceNotFound"
        assert results[1].error_type == "MalformedDirective"
        assert results[3].error_type == "CodecFailure"

    def test_picturefill_reverse_order(self, tmp_path, site):
        renderer = build_renderer(tmp_path, site, markup="picturefill")

        markup = renderer.render("hero poster.jpg")

        lines = markup.splitlines()
        assert lines[0] == '<span data-alt="Hero" >'
        assert "poster-200x150-" in lines[1] and 'data-media="(max-width: 600px)"' in lines[1]
        assert "poster-400x300-" in lines[2]
        assert lines[3] == "<noscript>"

    def test_picture_forward_order(self, tmp_path, site):
        renderer = build_renderer(tmp_path, site, markup="picture")

        markup = renderer.render('hero poster.jpg alt="Hero"')

        lines = markup.splitlines()
        assert "poster-400x300-" in lines[1]
        assert "poster-200x150-" in lines[2] and 'media="(max-width: 600px)"' in lines[2]
        assert lines[3] == "<p>Hero</p>"

    def test_multithread_same_identity(self, tmp_path, site):
        renderer = build_renderer(tmp_path, site)
        directives = ["400xAUTO poster.jpg", "400x300 poster.jpg", "AUTOx300 poster.jpg"] * 4

        with warnings.catch_warnings():
            warnings.simplefilter("ignore", UpscaleClamped)
            results = multithread_process_batch(directives, renderer)

        assert all(r.success for r in results)
        assert len({r.markup for r in results}) == 1
        assert len(output_files(site)) == 1
