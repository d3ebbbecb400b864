"""Tests for the post linter rules."""

import pytest

from conftest import CLEAN_POST, make_post
from post_linter import PostIndex, PostLinter


def rules(issues):
    return sorted(issue.rule for issue in issues)


class TestFrontMatterRules:
    def test_clean_post(self, config, write_post):
        path = write_post('2024-03-04-docker-basics.md', CLEAN_POST)
        assert PostLinter(config=config).lint_file(str(path)) == []

    def test_missing_front_matter(self, config, write_post):
        path = write_post('2024-03-04-x.md', "Just text\n")
        issues = PostLinter(config=config).lint_file(str(path))
        assert rules(issues) == ['front-matter-missing']
        assert issues[0].line == 1

    def test_invalid_yaml_reports_line(self, config, write_post):
        path = write_post('2024-03-04-x.md', "---\ntitle: ok\ntags: [unclosed\n---\n\nBody\n")
        issues = PostLinter(config=config).lint_file(str(path))
        assert rules(issues) == ['front-matter-invalid']
        assert issues[0].line >= 3

    def test_front_matter_must_be_a_mapping(self, config, write_post):
        path = write_post('2024-03-04-x.md', "---\n- a\n- b\n---\n\nBody\n")
        assert rules(PostLinter(config=config).lint_file(str(path))) == ['front-matter-invalid']

    def test_missing_required_field(self, config, write_post):
        path = write_post('2024-03-04-x.md', "---\ntitle: X\ndate: 2024-03-04\ncategories: [Docker]\ntags: []\n---\n")
        issues = PostLinter(config=config).lint_file(str(path))
        assert rules(issues) == ['front-matter-required']
        assert issues[0].line == 5
        assert "'tags'" in issues[0].message

    def test_unparseable_date(self, config, write_post):
        path = write_post('2024-03-04-x.md', make_post('X', 4).replace('date: 2024-03-04', 'date: someday'))
        assert rules(PostLinter(config=config).lint_file(str(path))) == ['front-matter-date']

    @pytest.mark.parametrize('bad_date', ['2024-02-30', '2024-13-01', '2024-02-30 10:00:00'])
    def test_impossible_calendar_date(self, config, write_post, bad_date):
        path = write_post('2024-03-04-x.md', make_post('X', 4).replace('date: 2024-03-04', f'date: {bad_date}'))
        issues = PostLinter(config=config).lint_file(str(path))
        assert rules(issues) == ['front-matter-date']
        assert issues[0].line == 3
        assert bad_date in issues[0].message

    def test_impossible_date_does_not_stop_directory_lint(self, tmp_path, config, write_post):
        write_post('2024-03-04-x.md', make_post('X', 4).replace('date: 2024-03-04', 'date: 2024-02-30'))
        write_post('2024-03-05-y.md', make_post('Y', 5))

        linter = PostLinter(config=config)
        issues = linter.lint_directory(str(tmp_path))
        assert rules(issues) == ['front-matter-date']
        assert linter.files_checked == 2

    def test_date_with_timezone_offset(self, config, write_post):
        path = write_post('2024-03-04-x.md',
                          make_post('X', 4).replace('date: 2024-03-04', 'date: 2024-03-04 09:30:00 +0900'))
        assert PostLinter(config=config).lint_file(str(path)) == []

    def test_date_mismatch_is_a_warning(self, config, write_post):
        path = write_post('2024-03-05-x.md', make_post('X', 4))
        issues = PostLinter(config=config).lint_file(str(path))
        assert rules(issues) == ['front-matter-date-mismatch']
        assert not issues[0].is_error
        assert issues[0].line == 3

    def test_wrong_types(self, config, write_post):
        path = write_post('2024-03-04-x.md', make_post('X', 4, categories='{a: 1}'))
        assert 'front-matter-type' in rules(PostLinter(config=config).lint_file(str(path)))

    def test_long_title(self, config, write_post):
        config['lint']['max_title_length'] = 10
        path = write_post('2024-03-04-x.md', make_post('A title that is too long', 4))
        assert rules(PostLinter(config=config).lint_file(str(path))) == ['title-length']

    def test_unknown_category(self, config, write_post):
        path = write_post('2024-03-04-x.md', make_post('X', 4, categories='[Gardening]'))
        issues = PostLinter(config=config).lint_file(str(path))
        assert rules(issues) == ['unknown-category']
        assert issues[0].line == 4

    def test_missing_taxonomy_skips_category_check(self, tmp_path, config, write_post):
        config['taxonomy_file'] = str(tmp_path / 'missing.json')
        path = write_post('2024-03-04-x.md', make_post('X', 4, categories='[Gardening]'))
        assert PostLinter(config=config).lint_file(str(path)) == []

    def test_filename_convention(self, config, write_post):
        path = write_post('docker-basics.md', make_post('X', 4))
        assert rules(PostLinter(config=config).lint_file(str(path))) == ['filename-convention']

    def test_uppercase_slug_is_a_warning(self, config, write_post):
        path = write_post('2024-03-04-Docker.md', make_post('X', 4))
        issues = PostLinter(config=config).lint_file(str(path))
        assert rules(issues) == ['filename-convention']
        assert not issues[0].is_error


class TestBodyRules:
    def test_unclosed_fence_line_number(self, config, write_post):
        content = make_post('X', 4, body="Intro\n\n```python\nprint(1)\n")
        path = write_post('2024-03-04-x.md', content)

        issues = PostLinter(config=config).lint_file(str(path))

        assert rules(issues) == ['fence-unclosed']
        assert issues[0].line == content.splitlines().index('```python') + 1

    def test_fence_without_language(self, config, write_post):
        content = make_post('X', 4, body="```\ncode\n```\n")
        path = write_post('2024-03-04-x.md', content)
        issues = PostLinter(config=config).lint_file(str(path))
        assert rules(issues) == ['fence-language']
        assert issues[0].line == content.splitlines().index('```') + 1

    def test_fence_language_can_be_relaxed(self, config, write_post):
        config['lint']['require_fence_language'] = False
        path = write_post('2024-03-04-x.md', make_post('X', 4, body="```\ncode\n```\n"))
        assert PostLinter(config=config).lint_file(str(path)) == []

    def test_heading_level_skip(self, config, write_post):
        path = write_post('2024-03-04-x.md', make_post('X', 4, body="## One\n\n#### Three\n"))
        issues = PostLinter(config=config).lint_file(str(path))
        assert rules(issues) == ['heading-level-skip']
        assert 'h2 to h4' in issues[0].message

    def test_broken_anchor(self, config, write_post):
        path = write_post('2024-03-04-x.md', make_post('X', 4, body="## Intro\n\n[a](#intro) [b](#nope)\n"))
        issues = PostLinter(config=config).lint_file(str(path))
        assert rules(issues) == ['broken-anchor']
        assert "'#nope'" in issues[0].message

    def test_relative_links(self, config, write_post):
        write_post('2024-03-04-docker-basics.md', CLEAN_POST)
        body = ("[ok](2024-03-04-docker-basics.md#intro)\n"
                "[bad anchor](2024-03-04-docker-basics.md#missing)\n"
                "[gone](missing.md)\n")
        path = write_post('2024-03-05-x.md', make_post('X', 5, body=body))

        assert rules(PostLinter(config=config).lint_file(str(path))) == ['broken-anchor', 'broken-link']

    def test_post_url_tags(self, config, write_post):
        write_post('2024-03-04-docker-basics.md', CLEAN_POST)
        body = ("[ok]({% post_url 2024-03-04-docker-basics %})\n"
                "[bad]({% post_url 2024-01-01-nothing %})\n")
        path = write_post('2024-03-05-x.md', make_post('X', 5, body=body))

        issues = PostLinter(config=config).lint_file(str(path))
        assert rules(issues) == ['broken-post-url']
        assert '2024-01-01-nothing' in issues[0].message

    def test_post_url_to_markdown_extension_sibling(self, config, write_post):
        write_post('2024-03-04-docker-basics.markdown', CLEAN_POST)
        body = "[ok]({% post_url 2024-03-04-docker-basics %})\n[anchor](/2024/03/04/docker-basics.html#intro)\n"
        path = write_post('2024-03-05-x.md', make_post('X', 5, body=body))

        assert PostLinter(config=config).lint_file(str(path)) == []

    def test_permalink_links(self, config, write_post):
        write_post('2024-03-04-docker-basics.md', CLEAN_POST)
        body = ("[ok](/2024/03/04/docker-basics.html#next-steps)\n"
                "[no suffix](/2024/03/04/docker-basics/)\n"
                "[bad](/2024/01/01/nothing.html)\n")
        path = write_post('2024-03-05-x.md', make_post('X', 5, body=body))

        assert rules(PostLinter(config=config).lint_file(str(path))) == ['broken-link']

    def test_link_tag_resolves_from_site_root(self, tmp_path, config, write_post):
        (tmp_path / 'about.md').write_text('# About\n')
        body = "{% link about.md %} and {% link missing.md %}\n"
        path = write_post('2024-03-05-x.md', make_post('X', 5, body=body))

        assert rules(PostLinter(config=config).lint_file(str(path))) == ['broken-link']

    def test_links_in_code_are_ignored(self, config, write_post):
        body = "Use `[x](#nope)` inline.\n\n```markdown\n[y](missing.md)\n```\n"
        path = write_post('2024-03-04-x.md', make_post('X', 4, body=body))
        assert PostLinter(config=config).lint_file(str(path)) == []

    def test_external_links_and_footnotes_are_ignored(self, config, write_post):
        body = ("See [docs](https://docs.python.org) and <a href=\"mailto:a@b.c\">mail</a>.[^1]\n\n"
                "[^1]: A footnote.\n")
        path = write_post('2024-03-04-x.md', make_post('X', 4, body=body))
        assert PostLinter(config=config).lint_file(str(path)) == []

    def test_disabled_rules_accept_patterns(self, config, write_post):
        config['lint']['disabled_rules'] = ['fence-*']
        path = write_post('2024-03-04-x.md', make_post('X', 4, body="```\ncode\n"))
        assert PostLinter(config=config).lint_file(str(path)) == []


class TestLintDirectory:
    def test_sample_posts_have_no_errors(self, sample_site, config):
        linter = PostLinter(config=config)
        issues = linter.lint_directory(str(sample_site))

        assert [i for i in issues if i.is_error] == []
        assert linter.files_checked == 4

    def test_series_checks_and_report(self, tmp_path, config, write_post):
        write_post('2024-03-04-one.md', make_post('Guide Part 1: Start', 4))
        write_post('2024-03-05-two.md', make_post('Guide Part 1: Again', 5))

        linter = PostLinter(config=config)
        issues = linter.lint_directory(str(tmp_path))
        report = linter.get_lint_report()

        assert rules(issues) == ['series-duplicate-part']
        assert report['files_checked'] == 2
        assert report['errors'] == 1
        assert report['warnings'] == 0
        assert report['rule_breakdown'] == {'series-duplicate-part': 1}
        assert report['issues'][0]['rule'] == 'series-duplicate-part'

    def test_series_checks_can_be_disabled(self, tmp_path, config, write_post):
        config['lint']['check_series'] = False
        write_post('2024-03-04-one.md', make_post('Guide Part 1: Start', 4))
        write_post('2024-03-05-two.md', make_post('Guide Part 1: Again', 5))

        assert PostLinter(config=config).lint_directory(str(tmp_path)) == []

    def test_issues_are_sorted(self, tmp_path, config, write_post):
        write_post('2024-03-05-b.md', make_post('B', 5, body="[x](#nope)\n"))
        write_post('2024-03-04-a.md', make_post('A', 4, body="[x](#nope)\n\n[y](#gone)\n"))

        issues = PostLinter(config=config).lint_directory(str(tmp_path))
        assert [(i.path.rsplit('/', 1)[-1], i.line) for i in issues] == [
            ('2024-03-04-a.md', 8), ('2024-03-04-a.md', 10), ('2024-03-05-b.md', 8)]

    def test_empty_directory(self, tmp_path, config):
        linter = PostLinter(config=config)
        assert linter.lint_directory(str(tmp_path)) == []
        assert linter.get_lint_report()['files_checked'] == 0


class TestPostIndex:
    def test_lookup(self, config, write_post):
        path = write_post('2024-03-04-docker-basics.md', CLEAN_POST)
        index = PostIndex([str(path)], config['site']['permalink'], 'kramdown')

        assert index.find_post_url('2024-03-04-docker-basics')['path'] == str(path)
        assert index.find_post_url('tutorials/2024-03-04-docker-basics.md') is not None
        assert index.find_post_url('2024-03-04-other') is None
        assert '/2024/03/04/docker-basics' in index.by_url
        assert {'intro', 'next-steps'} <= index.by_stem['2024-03-04-docker-basics']['anchors']
