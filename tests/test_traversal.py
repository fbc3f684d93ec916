"""Tests for bounded-depth link traversal."""

import json

import pytest

from vaultpack.export.traversal import traverse


def _chain(make_vault):
    return make_vault(
        {
            "root.md": "# Root\n[[A]]\n",
            "A.md": "[[B]]\n",
            "B.md": "[[C]]\n",
            "C.md": "end\n",
        }
    )


def test_depth_zero_only_root(make_vault):
    vault = _chain(make_vault)
    result = traverse(vault, vault.get_file("root.md"), 0)
    assert list(result.included) == ["root.md"]
    assert result.depth_map == {"root.md": 0}
    assert result.filtered == {}


def test_depth_bound_stops_chain(make_vault):
    vault = _chain(make_vault)
    result = traverse(vault, vault.get_file("root.md"), 1)
    assert list(result.included) == ["root.md", "A.md"]
    assert "B.md" not in result.filtered and "C.md" not in result.filtered
    assert "B.md" not in result.depth_map


def test_full_chain_depths_and_relations(make_vault):
    vault = _chain(make_vault)
    result = traverse(vault, vault.get_file("root.md"), 5)
    assert result.depth_map == {"root.md": 0, "A.md": 1, "B.md": 2, "C.md": 3}
    assert result.parent_map == {"A.md": {"root.md"}, "B.md": {"A.md"}, "C.md": {"B.md"}}
    assert result.children_map == {"root.md": {"A.md"}, "A.md": {"B.md"}, "B.md": {"C.md"}}


@pytest.mark.parametrize("max_depth", [0, 1, 2, 5])
def test_cycle_visits_root_once(make_vault, max_depth):
    vault = make_vault({"root.md": "[[A]]", "A.md": "[[root]]"})
    result = traverse(vault, vault.get_file("root.md"), max_depth)
    assert result.depth_map["root.md"] == 0
    assert "root.md" not in result.parent_map
    assert list(result.included).count("root.md") == 1


def test_first_discovery_wins(make_vault):
    vault = make_vault(
        {
            "root.md": "[[A]] [[B]]",
            "A.md": "[[B]]",
            "B.md": "leaf",
        }
    )
    result = traverse(vault, vault.get_file("root.md"), 3)
    # Depth-first: B is reached through A before root's own link to it.
    assert result.depth_map["B.md"] == 2
    assert result.parent_map["B.md"] == {"A.md"}


def test_filtered_files_are_leaves(make_vault):
    vault = make_vault(
        {
            "root.md": "[[Secret]] [[Open]]",
            "Secret.md": "---\ntags: private\n---\n[[Hidden]]",
            "Hidden.md": "never reached",
            "Open.md": "ok",
        }
    )
    result = traverse(vault, vault.get_file("root.md"), 5, ignore_tags=["#private"])
    assert set(result.included) == {"root.md", "Open.md"}
    assert result.filtered["Secret.md"].reason == "Tag matches: #private"
    assert "Hidden.md" not in result.depth_map
    assert not set(result.included) & set(result.filtered)


def test_folder_filter(make_vault):
    vault = make_vault(
        {
            "root.md": "[[tpl]] ![[img.png]]",
            "Templates/tpl.md": "x",
            "img.png": b"\x89PNG",
        }
    )
    result = traverse(vault, vault.get_file("root.md"), 1, ignore_folders=["Templates"])
    assert set(result.included) == {"root.md", "img.png"}
    assert result.filtered["Templates/tpl.md"].reason == "Folder path matches: Templates"


def test_attachments_are_not_followed(make_vault):
    vault = make_vault({"root.md": "[doc](doc.txt)", "doc.txt": "[[other]]", "other.md": "x"})
    result = traverse(vault, vault.get_file("root.md"), 3)
    assert set(result.included) == {"root.md", "doc.txt"}


def test_unresolved_links_are_dropped(make_vault):
    vault = make_vault({"root.md": "[[Missing]] [[A]]", "A.md": "x"})
    result = traverse(vault, vault.get_file("root.md"), 2)
    assert set(result.included) == {"root.md", "A.md"}
    assert result.filtered == {}


def test_canvas_root_is_followed(make_vault):
    canvas = json.dumps({"nodes": [{"type": "file", "file": "A.md"}, {"type": "text", "text": "[[B]]"}]})
    vault = make_vault({"board.canvas": canvas, "A.md": "x", "B.md": "y"})
    result = traverse(vault, vault.get_file("board.canvas"), 1)
    assert set(result.included) == {"board.canvas", "A.md", "B.md"}


def test_malformed_canvas_has_no_links(make_vault):
    vault = make_vault({"board.canvas": "{not json", "A.md": "x"})
    result = traverse(vault, vault.get_file("board.canvas"), 3)
    assert list(result.included) == ["board.canvas"]


def test_excluded_root_is_filtered(make_vault):
    vault = make_vault({"root.md": "#draft\n[[A]]", "A.md": "x"})
    result = traverse(vault, vault.get_file("root.md"), 2, ignore_tags=["#draft"])
    assert result.included == {}
    assert result.filtered["root.md"].reason == "Tag matches: #draft"
    assert "A.md" not in result.depth_map


def test_rerun_starts_from_scratch(make_vault):
    vault = _chain(make_vault)
    root = vault.get_file("root.md")
    deep = traverse(vault, root, 3)
    shallow = traverse(vault, root, 1)
    assert len(deep.included) == 4
    assert list(shallow.included) == ["root.md", "A.md"]


def test_negative_depth_rejected(make_vault):
    vault = _chain(make_vault)
    with pytest.raises(ValueError):
        traverse(vault, vault.get_file("root.md"), -1)


def test_long_chain_does_not_hit_recursion_limit(make_vault):
    count = 1500
    files = {f"n{i}.md": f"[[n{i + 1}]]" for i in range(count)}
    files[f"n{count}.md"] = "end"
    vault = make_vault(files)
    result = traverse(vault, vault.get_file("n0.md"), count + 10)
    assert len(result.included) == count + 1
    assert result.depth_map[f"n{count}.md"] == count


def test_partial_folder_name_link_is_dropped(make_vault):
    vault = make_vault({"root.md": "[[sub/note]]", "mysub/note.md": "x"})
    result = traverse(vault, vault.get_file("root.md"), 1)
    assert list(result.included) == ["root.md"]
