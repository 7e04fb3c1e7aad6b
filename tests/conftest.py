from __future__ import annotations

import re
from pathlib import Path

import pytest

from ui5kit.themes import LessCompileError, ThemeResult

BUILD_TIME = "Mon Jan 01 2024 - 00:00:00"

_IMPORT = re.compile(r'@import\s+"([^"]+)"')


def fake_compiler(path: Path) -> ThemeResult:
    """Resolve imports like a LESS compiler would and fail on missing partials."""
    text = path.read_text(encoding="utf-8")
    for name in _IMPORT.findall(text):
        dep = path.parent / name
        if not dep.exists():
            raise LessCompileError(f"Cannot import '{dep}', file not found", filename=str(path))
    return ThemeResult(css=".x { color: red; }", css_rtl=".x { color: red; }", variables={"sapBrandColor": "red"})


def _write(root: Path, rel: str, content: str) -> Path:
    path = root / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content, encoding="utf-8")
    return path


CORE_ENTRY = """/*!
 * ${copyright}
 */
// raw:sap/ui/core/A.js
// raw:sap/ui/thirdparty/B.js
"""


@pytest.fixture
def ui5_source(tmp_path: Path) -> Path:
    """A minimal OpenUI5 source tree with two modules and one theme library."""
    root = tmp_path / "download"
    _write(root, "LICENSE.txt", "Apache-2.0\n")
    _write(root, "README.md", "# OpenUI5\n")

    core = "src/sap.ui.core/src"
    _write(root, f"{core}/sap-ui-core.js", CORE_ENTRY)
    _write(root, f"{core}/sap-ui-core-nojQuery.js", CORE_ENTRY)
    _write(root, f"{core}/sap/ui/core/A.js", "/*! ${copyright} */\nvar a = 1;\n")
    _write(root, f"{core}/sap/ui/thirdparty/B.js", "var b = 2;\n")
    _write(root, f"{core}/sap/ui/core/Core.js", "sap.ui.define([], function () {\n  return {};\n});\n")
    _write(root, f"{core}/sap/ui/Global.js", "var sapGlobal = true;\n")
    _write(root, f"{core}/jquery.sap.global.js", "var jq = 1;\n")
    _write(root, f"{core}/sap/ui/core/messagebundle.properties", "key=value\n")

    m = "src/sap.m/src"
    _write(root, f"{m}/sap/m/library.js", "/*!\n * ${copyright}\n */\nvar lib = 'sap.m';\n")
    _write(root, f"{m}/sap/m/Button.js", "// a button\nvar button = 1;\n")
    _write(
        root,
        f"{m}/sap/m/themes/base/library.source.less",
        '/*! ${copyright} */\n@import "foo.less";\n.sapMBtn { color: red; }\n',
    )

    theme = "src/themelib_sap_belize/src"
    _write(root, f"{theme}/sap/m/themes/sap_belize/library.source.less", ".sapMBtn { color: blue; }\n")
    _write(root, f"{theme}/sap.m/src/sap/m/themes/base/extra.less", "@extra: 1px;\n")

    # ignored: neither module nor theme prefix
    _write(root, "src/testsuite/src/index.js", "var t = 1;\n")
    return root


ENTRY_TEMPLATE = """<!DOCTYPE html>
<html>
<head>
<title>{{ title }}</title>
<script id="sap-ui-bootstrap" src="{{ src }}"
  data-sap-ui-theme="{{ theme }}"
  data-sap-ui-resourceroots='{{ resourceroots }}'
  data-sap-ui-theme-roots='{{ themeroots }}'>
</script>
</head>
<body class="sapUiBody"></body>
</html>
"""

PROJECT_CONFIG = """ui5:
  title: Starter Kit
  version: 1.52.5
  url: resources/sap-ui-core.js
  is_archive: false
  apps:
    - {name: my.app, path: src/my-app}
  themes:
    - {name: my.theme, path: src/themes/my}
  build:
    cache_buster: true
"""


@pytest.fixture
def starter_project(tmp_path: Path) -> Path:
    """A small application project; returns the path of its config file."""
    root = tmp_path / "project"
    _write(root, "ui5kit.yaml", PROJECT_CONFIG)
    _write(root, "src/index.html.j2", ENTRY_TEMPLATE)
    _write(root, "src/my-app/Component.js", "// component\nsap.ui.define([], function () {\n  return {};\n});\n")
    _write(root, "src/my-app/manifest.json", '{"sap.app": {"id": "my.app"}}\n')
    _write(root, "src/my-app/view/Main.view.xml", "<mvc:View/>\n")
    _write(root, "src/my-app/i18n/i18n.properties", "title=Starter\n")
    _write(root, "src/themes/my/UI5/sap/m/themes/my/library.css", ".sapMBtn{color:red}\n")
    return root / "ui5kit.yaml"
