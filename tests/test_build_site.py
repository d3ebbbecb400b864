"""Tests for markdown rendering and the static site build."""

import json
from datetime import datetime

import pytest

from build_site import BuildError, SiteBuilder, group_by_term, main, output_path_for
from conftest import make_post
from html_renderer import (HtmlRenderer, convert_markdown_to_html, format_atom_date, format_date,
                           replace_liquid_links)
from post_parser import Post


class TestHtmlRenderer:
    def test_convert_markdown(self):
        html, toc_html = convert_markdown_to_html("# Title\n\n```python\nprint(1)\n```\n")
        assert '<h1' in html
        assert 'print(1)' in html
        assert 'Title' in toc_html

    def test_replace_liquid_links(self):
        urls = {'2024-03-04-docker': '/2024/03/04/docker.html'}
        text = ("[a]({% post_url 2024-03-04-docker %}) [b]({% post_url missing %})\n"
                "{% raw %}{{ secrets.TOKEN }}{% endraw %}")

        result = replace_liquid_links(text, urls.get)

        assert result == "[a](/2024/03/04/docker.html) [b](#)\n{{ secrets.TOKEN }}"

    def test_format_date(self):
        assert format_date(datetime(2024, 3, 4)) == 'March 04, 2024'
        assert format_date(None) == ''

    def test_format_atom_date_carries_an_offset(self):
        value = datetime(2024, 3, 4, 9, 30)
        stamp = format_atom_date(value)

        assert stamp == value.astimezone().isoformat(timespec='seconds')
        assert stamp.startswith('2024-03-04T')
        assert not stamp.endswith('Z')

    def test_render_post_escapes_title(self, config):
        renderer = HtmlRenderer(config['site']['templates_dir'], config['site'])
        post = Post('_posts/2024-03-04-x.md', {'title': 'Tags <b> & more', 'categories': ['CI/CD']}, '')

        html = renderer.render_post(post, '<p>Body</p>')

        assert 'Tags &lt;b&gt; &amp; more' in html
        assert '<p>Body</p>' in html
        assert '/categories/cicd.html' in html

    def test_site_url_uses_base_url(self, config):
        config['site']['base_url'] = 'https://example.com/blog/'
        renderer = HtmlRenderer(config['site']['templates_dir'], config['site'])
        assert renderer.site_url('/feed.xml') == 'https://example.com/blog/feed.xml'


class TestSiteBuilder:
    def test_output_path_for(self, tmp_path):
        assert output_path_for(tmp_path, '/2024/03/04/x.html') == tmp_path / '2024/03/04/x.html'
        assert output_path_for(tmp_path, '/about/') == tmp_path / 'about/index.html'

    def test_build_sample_site(self, sample_site, config):
        output = sample_site / 'out'
        stats = SiteBuilder(config=config).build(str(sample_site), output)

        assert stats['posts'] == 4
        assert stats['series'] == 1
        assert stats['lint_errors'] == 0

        for relative in ('index.html', 'feed.xml', 'posts.json', 'series/python-mastery.html',
                         'categories/docker.html', 'categories/cicd.html', 'tags/docker.html',
                         '2024/03/04/python-mastery-part-1-docker.html', '2024/04/01/study-schedule.html'):
            assert (output / relative).exists(), relative
        assert stats['files_written'] == len(list(p for p in output.rglob('*') if p.is_file()))

    def test_post_page_links_and_navigation(self, sample_site, config):
        output = sample_site / 'out'
        SiteBuilder(config=config).build(str(sample_site), output)

        part2 = (output / '2024/03/11/python-mastery-part-2-ci-cd.html').read_text(encoding='utf-8')
        assert 'href="/2024/03/04/python-mastery-part-1-docker.html#multi-stage-builds"' in part2
        assert 'href="/2024/03/18/python-mastery-part-3-kubernetes.html"' in part2
        assert 'Part 2 of 3' in part2
        assert '{% raw %}' not in part2

    def test_posts_json_newest_first(self, sample_site, config):
        output = sample_site / 'out'
        SiteBuilder(config=config).build(str(sample_site), output)

        data = json.loads((output / 'posts.json').read_text(encoding='utf-8'))
        assert [p['slug'] for p in data][0] == 'study-schedule'
        assert data[-1]['series'] == 'Python Mastery'
        assert data[-1]['part'] == 1

    def test_feed_is_atom(self, sample_site, config):
        output = sample_site / 'out'
        SiteBuilder(config=config).build(str(sample_site), output)

        feed = (output / 'feed.xml').read_text(encoding='utf-8')
        assert feed.startswith('<?xml')
        assert feed.count('<entry>') == 4

    def test_feed_timestamps_match_post_dates(self, tmp_path, config, write_post):
        write_post('2024-03-04-x.md', make_post('X', 4).replace('date: 2024-03-04', 'date: 2024-03-04 09:30:00'))
        SiteBuilder(config=config).build(str(tmp_path), tmp_path / 'out')

        feed = (tmp_path / 'out' / 'feed.xml').read_text(encoding='utf-8')
        expected = datetime(2024, 3, 4, 9, 30).astimezone().isoformat(timespec='seconds')
        assert feed.count(f'<updated>{expected}</updated>') == 2

    def test_terms_differing_in_case_share_a_page(self, tmp_path, config, write_post):
        write_post('2024-03-04-a.md', make_post('Post A', 4, categories='[Docker]', tags='[CI/CD]'))
        write_post('2024-03-05-b.md', make_post('Post B', 5, categories='[docker]', tags='[cicd]'))

        stats = SiteBuilder(config=config).build(str(tmp_path), tmp_path / 'out')

        assert stats['categories'] == 1
        assert stats['tags'] == 1
        category_page = (tmp_path / 'out' / 'categories' / 'docker.html').read_text(encoding='utf-8')
        assert 'Post A' in category_page and 'Post B' in category_page
        tag_page = (tmp_path / 'out' / 'tags' / 'cicd.html').read_text(encoding='utf-8')
        assert 'Post A' in tag_page and 'Post B' in tag_page
        index = (tmp_path / 'out' / 'index.html').read_text(encoding='utf-8')
        assert index.count('/categories/docker.html') == 1

    def test_group_by_term(self):
        newer = Post('_posts/2024-03-05-b.md', {'title': 'B', 'categories': ['docker', 'Docker']}, '')
        older = Post('_posts/2024-03-04-a.md', {'title': 'A', 'categories': ['Docker', 'Python']}, '')

        groups = group_by_term([newer, older], 'categories')

        assert list(groups) == ['docker', 'python']
        assert groups['docker'] == ('docker', [newer, older])
        assert groups['python'] == ('Python', [older])

    def test_lint_errors_stop_the_build(self, tmp_path, config, write_post):
        write_post('2024-03-04-x.md', make_post('X', 4, body="```python\nprint(1)\n"))

        with pytest.raises(BuildError):
            SiteBuilder(config=config).build(str(tmp_path), tmp_path / 'out')
        assert not (tmp_path / 'out').exists()

    def test_force_builds_despite_errors(self, tmp_path, config, write_post):
        write_post('2024-03-04-x.md', make_post('X', 4, body="```python\nprint(1)\n"))

        stats = SiteBuilder(config=config).build(str(tmp_path), tmp_path / 'out', force=True)

        assert stats['lint_errors'] == 1
        assert (tmp_path / 'out' / '2024/03/04/x.html').exists()

    def test_no_posts(self, tmp_path, config):
        with pytest.raises(BuildError, match='No valid posts'):
            SiteBuilder(config=config).build(str(tmp_path), tmp_path / 'out')

    def test_main_exits_on_build_error(self, tmp_path, config_file):
        with pytest.raises(SystemExit) as exc_info:
            main(['--config', str(config_file), '--root', str(tmp_path)])
        assert exc_info.value.code == 1
