import json
import logging
import shutil
from pathlib import Path

import pytest

from nuxt_lambda.config import get_settings
from nuxt_lambda.errors import ExternalProcessError

_ENV_KEYS = (
    "APP_ENV",
    "LOG_LEVEL",
    "NPM_AUTH_TOKEN",
    "NPM_REGISTRY",
    "LAMBDA_RUNTIME",
    "LAMBDA_HANDLER",
    "NUXT_VERSION",
    "NUXT_BUILD_COMMAND",
    "BUILD_SCRIPT",
    "BRIDGE_PACKAGE",
    "BRIDGE_VERSION",
    "BRIDGE_ENTRY",
)


@pytest.fixture(autouse=True)
def test_env(monkeypatch: pytest.MonkeyPatch):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    get_settings.cache_clear()
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    get_settings.cache_clear()


def router_source(pages: list[tuple[str, str]]) -> str:
    """Render a router.js shaped like the one `nuxt build` generates."""
    records = ",\n".join(
        "    {\n"
        f'      path: "{path}",\n'
        f"      component: () => interopDefault(import('../pages/{name}.vue' "
        f'/* webpackChunkName: "pages/{name}" */).then(m => m.default || m)),\n'
        f'      name: "{name}"\n'
        "    }"
        for path, name in pages
    )
    return (
        "import Vue from 'vue'\n"
        "import Router from 'vue-router'\n\n"
        "Vue.use(Router)\n\n"
        "export function createRouter() {\n"
        "  return new Router({\n"
        "    mode: 'history',\n"
        "    base: decodeURI('/'),\n"
        "    scrollBehavior,\n"
        f"    routes: [\n{records}\n    ],\n"
        "    fallback: false\n"
        "  })\n"
        "}\n"
    )


class FakeToolchain:
    """Stands in for npm/yarn + nuxt by writing the files they would produce."""

    def __init__(self, fail_on: str | None = None) -> None:
        self.fail_on = fail_on
        self.calls: list[tuple[str, Path, tuple[str, ...]]] = []
        self.npmrc_seen: list[bool] = []

    def _check_failure(self, step: str) -> None:
        if self.fail_on == step:
            raise ExternalProcessError(
                f"{step} exited with code 1", command=[step], exit_code=1, output="boom"
            )

    async def install(self, path: Path, args: list[str] | None = None) -> None:
        flags = tuple(args or [])
        self.calls.append(("install", path, flags))
        self.npmrc_seen.append((path / ".npmrc").exists())
        step = "install-production" if "--production" in flags else "install"
        self._check_failure(step)

        modules = path / "node_modules"
        (modules / "@now/node-bridge").mkdir(parents=True, exist_ok=True)
        (modules / "@now/node-bridge/bridge.js").write_text("exports.Bridge = class {};\n")
        (modules / "vue").mkdir(parents=True, exist_ok=True)
        (modules / "vue/index.js").write_text("module.exports = {};\n")
        (modules / ".cache/babel").mkdir(parents=True, exist_ok=True)
        (modules / ".cache/babel/entry.json").write_text("{}\n")
        if "--production" in flags:
            shutil.rmtree(modules / "nuxt", ignore_errors=True)
        else:
            (modules / "nuxt").mkdir(parents=True, exist_ok=True)
            (modules / "nuxt/index.js").write_text("module.exports = {};\n")

    async def run_script(self, path: Path, script_name: str) -> bool:
        self.calls.append(("run_script", path, (script_name,)))
        self.npmrc_seen.append((path / ".npmrc").exists())
        self._check_failure("run_script")

        pages = sorted(p.stem for p in (path / "pages").glob("*.vue"))
        routes = [("/" if name == "index" else f"/{name}", name) for name in pages]
        dot_nuxt = path / ".nuxt"
        (dot_nuxt / "dist/server").mkdir(parents=True, exist_ok=True)
        (dot_nuxt / "dist/client/img").mkdir(parents=True, exist_ok=True)
        (dot_nuxt / "router.js").write_text(router_source(routes))
        (dot_nuxt / "records.json").write_text(json.dumps({"pages": pages}))
        (dot_nuxt / "dist/server/server.js").write_text("module.exports = {};\n")
        (dot_nuxt / "dist/server/client.manifest.json").write_text("{}\n")
        (dot_nuxt / "dist/client/app.js").write_text("console.log('app');\n")
        (dot_nuxt / "dist/client/img/logo.png").write_bytes(b"\x89PNG\r\n")
        return True


@pytest.fixture
def fake_toolchain() -> FakeToolchain:
    return FakeToolchain()


@pytest.fixture
def make_toolchain():
    return FakeToolchain
