"""Tests for fuzzy ranking and exact lookup."""

from scriptlens.catalog import build_catalog
from scriptlens.models import Catalog, Function, ScriptFile
from scriptlens.resolver import find_function, find_scripts, rank, score_term

from conftest import write_script


def make_catalog(*scripts):
    """Build a catalog in memory from (path, [(name, description), ...]) pairs."""
    catalog = Catalog(roots=["/scripts"])
    for path, functions in scripts:
        script = ScriptFile(path=path)
        for i, (name, description) in enumerate(functions, 1):
            script.functions.append(Function(name=name, script=script, description=description, start_line=i, end_line=i))
        catalog.scripts.append(script)
    return catalog


CATALOG = make_catalog(
    ("/scripts/deploy.sh", [("deploy", "Deploys the app"), ("deploy_all", "Deploy every service")]),
    ("/scripts/db.sh", [("backup", "Dump the database"), ("_connect", None)]),
    ("/scripts/web.sh", [("serve", "Start the dev server")]),
)


def test_empty_query_returns_everything_in_discovery_order():
    matches = rank(CATALOG, "")

    assert [m.function.name for m in matches] == ["deploy", "deploy_all", "backup", "_connect", "serve"]
    assert rank(CATALOG, None) == matches
    assert rank(CATALOG, "   ") == matches


def test_private_functions_can_be_hidden():
    assert "_connect" not in [m.function.name for m in rank(CATALOG, "", include_private=False)]
    assert "_connect" not in [m.function.name for m in rank(CATALOG, "conn", include_private=False)]
    assert [m.function.name for m in rank(CATALOG, "conn")] == ["_connect"]


def test_exact_name_ranks_first_over_longer_names():
    matches = rank(CATALOG, "deploy")

    assert matches[0].function.name == "deploy"
    assert matches[0].exact
    assert matches[1].function.name == "deploy_all"


def test_abbreviation_resolves():
    assert rank(CATALOG, "dep")[0].function.name == "deploy"
    assert rank(CATALOG, "bkp")[0].function.name == "backup"


def test_description_and_file_name_are_searched():
    assert rank(CATALOG, "database")[0].function.name == "backup"
    assert rank(CATALOG, "web")[0].function.name == "serve"


def test_every_term_must_match():
    assert [m.function.name for m in rank(CATALOG, "deploy every")] == ["deploy_all"]


def test_no_match_is_an_empty_list():
    assert rank(CATALOG, "zzzz") == []
    assert score_term("zz", "deploy") is None


def test_ranking_is_case_insensitive_and_stable():
    first = [m.function.uid for m in rank(CATALOG, "DePlOy")]
    second = [m.function.uid for m in rank(CATALOG, "deploy")]

    assert first == second


def test_same_name_in_two_scripts_are_distinct_candidates(colliding_tree):
    catalog = build_catalog([str(colliding_tree)])

    matches = [m for m in rank(catalog, "deploy") if m.function.name == "deploy"]

    assert len(matches) == 2
    assert matches[0].function.script.name == "deploy.sh"
    assert matches[1].function.script.name == "release.sh"


def test_find_scripts_by_name_stem_and_path(tmp_path):
    path = write_script(tmp_path, "deploy.sh", "deploy() { :; }\n")
    catalog = build_catalog([str(tmp_path)])

    for name in ("deploy.sh", "deploy", str(path)):
        assert [s.path for s in find_scripts(catalog, name)] == [str(path)]
    assert find_scripts(catalog, "other.sh") == []


def test_find_function():
    assert [f.name for f in find_function(CATALOG, "backup")] == ["backup"]
    assert [f.name for f in find_function(CATALOG, "backup", "db.sh")] == ["backup"]
    assert find_function(CATALOG, "backup", "web.sh") == []
    assert find_function(CATALOG, "back") == []
