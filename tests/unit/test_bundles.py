from pathlib import Path

import pytest

from nuxt_lambda.bundles import (
    BRIDGE_FILE,
    LAUNCHER_FILE,
    PATHNAME_PLACEHOLDER,
    assemble_lambdas,
    collect_shared_files,
    lambda_key,
    load_launcher_template,
    render_launcher,
)
from nuxt_lambda.config import get_settings
from nuxt_lambda.errors import ArtifactShapeError, ConfigurationError
from nuxt_lambda.fs import FileBlob
from nuxt_lambda.routes import Route


def _touch(base: Path, rel: str, content: str = "x") -> None:
    path = base / rel
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(content)


@pytest.fixture
def built_work_dir(tmp_path: Path) -> Path:
    _touch(tmp_path, "node_modules/@now/node-bridge/bridge.js", "bridge")
    _touch(tmp_path, "node_modules/vue/index.js")
    _touch(tmp_path, "node_modules/.cache/babel/x.json")
    _touch(tmp_path, ".nuxt/dist/server-bundle.json")
    _touch(tmp_path, ".nuxt/dist/server/server.js")
    _touch(tmp_path, ".nuxt/dist/client/app.js")
    _touch(tmp_path, ".nuxt/router.js")
    return tmp_path


def test_packaged_template_has_one_placeholder() -> None:
    assert load_launcher_template().count(PATHNAME_PLACEHOLDER) == 1


def test_render_launcher() -> None:
    rendered = render_launcher("render('PATHNAME_PLACEHOLDER')", "/about")
    assert rendered == "render('/about')"


@pytest.mark.parametrize("template", ["no placeholder", "PATHNAME_PLACEHOLDER PATHNAME_PLACEHOLDER"])
def test_render_launcher_requires_single_placeholder(template: str) -> None:
    with pytest.raises(ConfigurationError):
        render_launcher(template, "/")


@pytest.mark.parametrize("route_path", ["/it's", "/a\\b", "/line\nbreak"])
def test_render_launcher_rejects_paths_that_break_the_js_string(route_path: str) -> None:
    with pytest.raises(ArtifactShapeError, match="cannot be embedded"):
        render_launcher("render('PATHNAME_PLACEHOLDER')", route_path)


def test_render_launcher_keeps_dynamic_segments() -> None:
    rendered = render_launcher("render('PATHNAME_PLACEHOLDER')", "/users/:id?/*")
    assert rendered == "render('/users/:id?/*')"


def test_lambda_key() -> None:
    assert lambda_key(".", "index") == "index"
    assert lambda_key("app", "users-id") == "app/users-id"


def test_shared_files_closure(built_work_dir: Path) -> None:
    staged = {"nuxt.config.js": FileBlob.from_text("module.exports = {}")}
    shared = collect_shared_files(built_work_dir, staged, get_settings())
    assert sorted(shared) == [
        ".nuxt/dist/server-bundle.json",
        ".nuxt/dist/server/server.js",
        "node_modules/@now/node-bridge/bridge.js",
        "node_modules/vue/index.js",
        BRIDGE_FILE,
        "nuxt.config.js",
    ]
    assert shared[BRIDGE_FILE].read_bytes() == b"bridge"


def test_shared_files_without_nuxt_config(built_work_dir: Path) -> None:
    shared = collect_shared_files(built_work_dir, {}, get_settings())
    assert "nuxt.config.js" not in shared


def test_missing_bridge(tmp_path: Path) -> None:
    with pytest.raises(ArtifactShapeError, match="node-bridge"):
        collect_shared_files(tmp_path, {}, get_settings())


@pytest.mark.asyncio
async def test_one_lambda_per_route() -> None:
    shared = {"node_modules/vue/index.js": FileBlob(b"vue")}
    routes = [Route(path="/", name="index"), Route(path="/about", name="about")]
    lambdas = await assemble_lambdas(routes, shared, "app", get_settings())

    assert sorted(lambdas) == ["app/about", "app/index"]
    about = lambdas["app/about"]
    assert about.handler == "now__launcher.launcher"
    assert about.runtime == "nodejs8.10"
    launcher = about.files[LAUNCHER_FILE].read_bytes().decode()
    assert "nuxt.renderRoute('/about'" in launcher
    assert PATHNAME_PLACEHOLDER not in launcher


@pytest.mark.asyncio
async def test_lambdas_are_independent() -> None:
    shared = {"node_modules/vue/index.js": FileBlob(b"vue")}
    routes = [Route(path="/", name="index"), Route(path="/about", name="about")]
    lambdas = await assemble_lambdas(routes, shared, ".", get_settings())

    lambdas["index"].files["extra.js"] = FileBlob(b"extra")
    del lambdas["index"].files["node_modules/vue/index.js"]

    assert "extra.js" not in lambdas["about"].files
    assert "node_modules/vue/index.js" in lambdas["about"].files
    assert sorted(shared) == ["node_modules/vue/index.js"]
    assert lambdas["about"].files["node_modules/vue/index.js"] is shared["node_modules/vue/index.js"]


@pytest.mark.asyncio
async def test_duplicate_route_names_rejected() -> None:
    routes = [Route(path="/a", name="page"), Route(path="/b", name="page")]
    with pytest.raises(ArtifactShapeError, match="page"):
        await assemble_lambdas(routes, {}, ".", get_settings())


@pytest.mark.asyncio
async def test_quoted_route_path_fails_assembly() -> None:
    routes = [Route(path="/", name="index"), Route(path="/it's", name="its")]
    with pytest.raises(ArtifactShapeError, match="/it's"):
        await assemble_lambdas(routes, {}, ".", get_settings())
