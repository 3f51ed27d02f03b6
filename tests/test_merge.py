import json

import pytest

from pbiscan.core.merge import merge_scan_documents, parse_document


def _doc(*workspaces, instances=()):
    return {"workspaces": list(workspaces), "datasourceInstances": list(instances)}


def test_first_occurrence_of_a_workspace_wins():
    first = {"id": "w1", "name": "Finance", "datasets": [{"id": "d1"}]}
    later = {"id": "w1", "name": "Finance (stale)", "datasets": []}

    merged = merge_scan_documents([_doc(first), json.dumps(_doc(later, {"id": "w2"}))])

    assert [ws["id"] for ws in merged["workspaces"]] == ["w1", "w2"]
    assert merged["workspaces"][0]["name"] == "Finance"


def test_merging_the_same_result_twice_is_a_no_op():
    doc = _doc({"id": "w1"}, {"id": "w2"}, instances=[{"datasourceId": "s1"}])

    assert merge_scan_documents([doc, doc]) == merge_scan_documents([doc])


def test_datasource_instances_are_deduplicated_by_id():
    merged = merge_scan_documents(
        [
            _doc(instances=[{"datasourceId": "s1", "datasourceType": "Sql"}]),
            _doc(instances=[{"datasourceId": "s1", "datasourceType": "Other"}, {"datasourceId": "s2"}]),
        ]
    )

    assert [s["datasourceId"] for s in merged["datasourceInstances"]] == ["s1", "s2"]
    assert merged["datasourceInstances"][0]["datasourceType"] == "Sql"


def test_documents_without_workspaces_merge_to_empty_lists():
    assert merge_scan_documents(["{}", {"workspaces": None}]) == {
        "workspaces": [],
        "datasourceInstances": [],
    }


def test_parse_document_rejects_non_object_json():
    with pytest.raises(ValueError, match="not a JSON object"):
        parse_document("[1, 2]")


def test_unhashable_ids_do_not_abort_the_merge():
    merged = merge_scan_documents(
        [
            _doc({"id": ["w", 1]}, {"id": {"k": "v"}}, instances=[{"datasourceId": [1]}]),
            _doc({"id": ["w", 1], "name": "later"}, instances=[{"datasourceId": [1]}]),
        ]
    )

    assert [ws["id"] for ws in merged["workspaces"]] == [["w", 1], {"k": "v"}]
    assert len(merged["datasourceInstances"]) == 1
