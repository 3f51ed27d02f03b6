from pbiscan.core.validation import validate_scan_document


def test_clean_result_has_no_issues():
    doc = {"workspaces": [{"id": "w1", "datasets": [{"id": "d1", "tables": [{"name": "t"}]}]}]}

    assert validate_scan_document(doc, ["w1"], dataset_schema=True) == []


def test_missing_workspaces_are_reported_by_id():
    doc = {"workspaces": [{"id": "w1", "datasets": [{"id": "d1"}]}]}

    issues = validate_scan_document(doc, ["w1", "w2", "w3"])

    assert issues == ["2 requested workspace(s) missing from scan result: w2, w3"]


def test_workspaces_without_datasets_are_counted():
    doc = {"workspaces": [{"id": "w1"}, {"id": "w2", "datasets": []}]}

    assert validate_scan_document(doc, ["w1", "w2"]) == [
        "2 workspace(s) returned with zero datasets"
    ]


def test_dataset_without_tables_is_named_when_schema_was_requested():
    doc = {
        "workspaces": [
            {
                "id": "w1",
                "name": "Sales",
                "datasets": [
                    {"id": "d1", "name": "Orders", "tables": []},
                    {"id": "d2", "name": "Stock", "tables": [{"name": "Items"}]},
                ],
            }
        ]
    }

    assert validate_scan_document(doc, ["w1"], dataset_schema=True) == [
        "Dataset missing schema (zero tables): Sales/Orders"
    ]
    assert validate_scan_document(doc, ["w1"], dataset_schema=False) == []
