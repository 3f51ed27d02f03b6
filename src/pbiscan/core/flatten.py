"""Flatten a merged scan document into per-entity tables.

The walk goes top-down (workspace -> report/dataset -> table -> column/measure)
carrying the parent keys into every record. Absent collections are skipped at
every level and absent fields become None; nothing here raises on a sparse
document.
"""

from __future__ import annotations

from typing import Any, Mapping

from pbiscan.core.nodes import child_list, field
from pbiscan.core.refresh import RefreshEnricher
from pbiscan.core.stats import RunStatistics

FlatRecord = dict[str, Any]
FlatTables = dict[str, list[FlatRecord]]

REFRESH_SUMMARY_COLUMNS = [
    "hasRefreshHistory",
    "refreshHistoryStatus",
    "lastRefreshStatus",
    "lastRefreshType",
    "lastRefreshStartTime",
    "lastRefreshEndTime",
    "refreshHistoryError",
]

COLUMNS: dict[str, list[str]] = {
    "workspaces": [
        "workspaceId",
        "workspaceName",
        "type",
        "state",
        "isOnDedicatedCapacity",
        "capacityId",
        "description",
        "reportCount",
        "datasetCount",
    ],
    "reports": [
        "workspaceId",
        "workspaceName",
        "reportId",
        "reportName",
        "datasetId",
        "reportType",
        "createdDateTime",
        "modifiedDateTime",
        "createdBy",
        "modifiedBy",
    ],
    "datasets": [
        "workspaceId",
        "workspaceName",
        "datasetId",
        "datasetName",
        "configuredBy",
        "targetStorageMode",
        "contentProviderType",
        "createdDate",
        "isRefreshable",
        "tableCount",
        "hasSchemaData",
        *REFRESH_SUMMARY_COLUMNS,
    ],
    "tables": [
        "workspaceId",
        "workspaceName",
        "datasetId",
        "datasetName",
        "tableName",
        "isHidden",
        "columnCount",
        "measureCount",
        "sourceExpression",
    ],
    "columns": [
        "workspaceId",
        "datasetId",
        "datasetName",
        "tableName",
        "columnName",
        "dataType",
        "columnType",
        "isHidden",
        "expression",
    ],
    "measures": [
        "workspaceId",
        "datasetId",
        "datasetName",
        "tableName",
        "measureName",
        "expression",
        "isHidden",
        "description",
    ],
    "datasources": [
        "workspaceId",
        "datasetId",
        "datasetName",
        "datasourceId",
        "datasourceType",
        "server",
        "database",
        "url",
        "path",
        "gatewayId",
    ],
    "lineage": [
        "workspaceId",
        "datasetId",
        "datasetName",
        "upstreamType",
        "upstreamId",
        "upstreamWorkspaceId",
    ],
    "refresh_history": [
        "workspaceId",
        "workspaceName",
        "datasetId",
        "datasetName",
        "requestId",
        "refreshType",
        "status",
        "startTime",
        "endTime",
        "durationMinutes",
        "serviceExceptionJson",
    ],
}


def _workspace_record(ws: Mapping[str, Any]) -> FlatRecord:
    return {
        "workspaceId": ws.get("id"),
        "workspaceName": ws.get("name"),
        "type": ws.get("type"),
        "state": ws.get("state"),
        "isOnDedicatedCapacity": ws.get("isOnDedicatedCapacity"),
        "capacityId": ws.get("capacityId"),
        "description": ws.get("description"),
        "reportCount": len(child_list(ws, "reports")),
        "datasetCount": len(child_list(ws, "datasets")),
    }


def _report_record(ws_keys: FlatRecord, report: Mapping[str, Any]) -> FlatRecord:
    return {
        **ws_keys,
        "reportId": report.get("id"),
        "reportName": report.get("name"),
        "datasetId": report.get("datasetId"),
        "reportType": report.get("reportType"),
        "createdDateTime": report.get("createdDateTime"),
        "modifiedDateTime": report.get("modifiedDateTime"),
        "createdBy": report.get("createdBy"),
        "modifiedBy": report.get("modifiedBy"),
    }


def _dataset_record(ws_keys: FlatRecord, ds: Mapping[str, Any]) -> FlatRecord:
    table_count = len(child_list(ds, "tables"))
    return {
        **ws_keys,
        "datasetId": ds.get("id"),
        "datasetName": ds.get("name"),
        "configuredBy": ds.get("configuredBy"),
        "targetStorageMode": ds.get("targetStorageMode"),
        "contentProviderType": ds.get("contentProviderType"),
        "createdDate": ds.get("createdDate"),
        "isRefreshable": ds.get("isRefreshable"),
        "tableCount": table_count,
        "hasSchemaData": table_count > 0,
        **{name: None for name in REFRESH_SUMMARY_COLUMNS},
    }


def _table_rows(
    ds_keys: FlatRecord,
    ws_name: Any,
    ds: Mapping[str, Any],
    out: FlatTables,
) -> None:
    for table in child_list(ds, "tables"):
        table_name = table.get("name")
        columns = child_list(table, "columns")
        measures = child_list(table, "measures")
        sources = child_list(table, "source")

        out["tables"].append(
            {
                "workspaceId": ds_keys["workspaceId"],
                "workspaceName": ws_name,
                "datasetId": ds_keys["datasetId"],
                "datasetName": ds_keys["datasetName"],
                "tableName": table_name,
                "isHidden": table.get("isHidden"),
                "columnCount": len(columns),
                "measureCount": len(measures),
                "sourceExpression": field(sources[0], "expression") if sources else None,
            }
        )
        table_keys = {**ds_keys, "tableName": table_name}
        for col in columns:
            out["columns"].append(
                {
                    **table_keys,
                    "columnName": col.get("name"),
                    "dataType": col.get("dataType"),
                    "columnType": col.get("columnType"),
                    "isHidden": col.get("isHidden"),
                    "expression": col.get("expression"),
                }
            )
        for measure in measures:
            out["measures"].append(
                {
                    **table_keys,
                    "measureName": measure.get("name"),
                    "expression": measure.get("expression"),
                    "isHidden": measure.get("isHidden"),
                    "description": measure.get("description"),
                }
            )


def _datasource_record(ds_keys: FlatRecord, source: Mapping[str, Any]) -> FlatRecord:
    return {
        **ds_keys,
        "datasourceId": source.get("datasourceId"),
        "datasourceType": source.get("datasourceType"),
        "server": field(source, "connectionDetails", "server"),
        "database": field(source, "connectionDetails", "database"),
        "url": field(source, "connectionDetails", "url"),
        "path": field(source, "connectionDetails", "path"),
        "gatewayId": source.get("gatewayId"),
    }


def _dataset_datasources(
    ds: Mapping[str, Any],
    instances: Mapping[str, Mapping[str, Any]],
) -> list[Mapping[str, Any]]:
    """Inline ``datasources`` plus ``datasourceUsages`` resolved against the instances."""
    sources = list(child_list(ds, "datasources"))
    for usage in child_list(ds, "datasourceUsages"):
        instance_id = usage.get("datasourceInstanceId")
        instance = instances.get(instance_id)
        sources.append(instance if instance is not None else {"datasourceId": instance_id})
    return sources


def _lineage_rows(ds_keys: FlatRecord, ds: Mapping[str, Any]) -> list[FlatRecord]:
    base = {k: ds_keys[k] for k in ("workspaceId", "datasetId", "datasetName")}
    rows = [
        {
            **base,
            "upstreamType": "Dataflow",
            "upstreamId": edge.get("targetDataflowId"),
            "upstreamWorkspaceId": edge.get("groupId"),
        }
        for edge in child_list(ds, "upstreamDataflows")
    ]
    rows.extend(
        {
            **base,
            "upstreamType": "Dataset",
            "upstreamId": edge.get("targetDatasetId"),
            "upstreamWorkspaceId": edge.get("groupId"),
        }
        for edge in child_list(ds, "upstreamDatasets")
    )
    return rows


def flatten_document(
    document: Mapping[str, Any],
    *,
    refresh: RefreshEnricher | None = None,
    stats: RunStatistics | None = None,
) -> FlatTables:
    """
    Flatten a merged scan document into one list of records per family.

    Args:
        document: Merged scan document.
        refresh: Optional refresh history enricher. When given, dataset records
                 get the refresh summary columns and ``refresh_history`` rows
                 are collected.
        stats: Optional statistics to update with entity counts.

    Returns:
        Mapping of family name (see ``COLUMNS``) to records. Every family is
        present; families with no records map to an empty list.
    """
    out: FlatTables = {family: [] for family in COLUMNS}
    instances = {
        inst.get("datasourceId"): inst
        for inst in child_list(document, "datasourceInstances")
        if inst.get("datasourceId")
    }

    for ws in child_list(document, "workspaces"):
        ws_record = _workspace_record(ws)
        out["workspaces"].append(ws_record)
        ws_keys = {
            "workspaceId": ws_record["workspaceId"],
            "workspaceName": ws_record["workspaceName"],
        }

        for report in child_list(ws, "reports"):
            out["reports"].append(_report_record(ws_keys, report))

        for ds in child_list(ws, "datasets"):
            ds_record = _dataset_record(ws_keys, ds)
            ds_keys = {
                "workspaceId": ws_keys["workspaceId"],
                "datasetId": ds_record["datasetId"],
                "datasetName": ds_record["datasetName"],
            }
            if refresh is not None and ds_keys["workspaceId"] and ds_keys["datasetId"]:
                ds_record.update(refresh.summary(ds_keys["workspaceId"], ds_keys["datasetId"]))
                out["refresh_history"].extend(
                    refresh.details(
                        {**ds_keys, "workspaceName": ws_keys["workspaceName"]},
                        ds_keys["workspaceId"],
                        ds_keys["datasetId"],
                    )
                )
            out["datasets"].append(ds_record)

            _table_rows(ds_keys, ws_keys["workspaceName"], ds, out)
            for source in _dataset_datasources(ds, instances):
                out["datasources"].append(_datasource_record(ds_keys, source))
            out["lineage"].extend(_lineage_rows(ds_keys, ds))

    if stats is not None:
        stats.workspaces += len(out["workspaces"])
        stats.reports += len(out["reports"])
        stats.datasets += len(out["datasets"])
        stats.datasets_with_schema += sum(1 for d in out["datasets"] if d["hasSchemaData"])
        stats.tables += len(out["tables"])
        stats.columns += len(out["columns"])
        stats.measures += len(out["measures"])

    return out
