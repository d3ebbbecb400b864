"""Shared fixtures for the publishing script tests."""

import copy
import json
import shutil
from pathlib import Path

import pytest

from publish_config import DEFAULT_CONFIG

REPO_ROOT = Path(__file__).resolve().parent.parent
PUBLISH_DIR = REPO_ROOT / '.publish'

CLEAN_POST = """---
title: "Docker Basics"
date: 2024-03-04 09:00:00
categories: [Docker]
tags: [docker, containers]
---

Containers package an application with its runtime.

<!-- toc -->
<!-- tocstop -->

## Intro

Build the image first.

```bash
docker build -t app .
```

## Next Steps

Read the [intro](#intro) again.
"""


@pytest.fixture
def config(tmp_path):
    """Default config with repository paths made absolute."""
    cfg = copy.deepcopy(DEFAULT_CONFIG)
    cfg['taxonomy_file'] = str(PUBLISH_DIR / 'data' / 'taxonomy.json')
    cfg['template'] = str(PUBLISH_DIR / 'templates' / 'INDEX.jinja2')
    cfg['output_file'] = str(tmp_path / 'INDEX.md')
    cfg['site']['templates_dir'] = str(PUBLISH_DIR / 'templates' / 'site')
    cfg['site']['output_dir'] = str(tmp_path / 'site')
    return cfg


@pytest.fixture
def config_file(tmp_path, config):
    path = tmp_path / 'config.json'
    path.write_text(json.dumps(config), encoding='utf-8')
    return path


@pytest.fixture
def posts_dir(tmp_path):
    directory = tmp_path / '_posts'
    directory.mkdir()
    return directory


@pytest.fixture
def write_post(posts_dir):
    """Factory writing a post file into the temporary posts directory."""
    def _write(name, content):
        path = posts_dir / name
        path.write_text(content, encoding='utf-8')
        return path
    return _write


@pytest.fixture
def sample_site(tmp_path):
    """Copy of the repository's own posts."""
    shutil.copytree(REPO_ROOT / '_posts', tmp_path / '_posts', dirs_exist_ok=True)
    return tmp_path


def make_post(title, day, categories='[Python]', tags='[python]', extra='', body='Some text.\n'):
    """Build post text with front matter."""
    return (f"---\ntitle: \"{title}\"\ndate: 2024-03-{day:02d}\n"
            f"categories: {categories}\ntags: {tags}\n{extra}---\n\n{body}")
