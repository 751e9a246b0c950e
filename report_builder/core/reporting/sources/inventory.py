"""Inventory sources."""

from report_builder.core.reporting.catalog import (
    ColumnDef,
    ColumnType,
    SourceDefinition,
    register_source,
)

STOCK_MOVEMENTS = register_source(
    SourceDefinition(
        id="stock_movements",
        label="Movimientos de inventario",
        table_name="stock_movements",
        default_date_column="created_at",
        columns=(
            ColumnDef("id", "ID", ColumnType.STRING),
            ColumnDef("created_at", "Fecha", ColumnType.DATE),
            ColumnDef("product_id", "Producto", ColumnType.NUMBER),
            ColumnDef("branch_id", "Sucursal", ColumnType.NUMBER),
            ColumnDef("direction", "Dirección", ColumnType.ENUM, ("in", "out")),
            ColumnDef("qty", "Cantidad", ColumnType.NUMBER),
            ColumnDef("unit_cost", "Costo unitario", ColumnType.NUMBER),
            ColumnDef("source", "Origen", ColumnType.STRING),
            ColumnDef("note", "Nota", ColumnType.STRING),
        ),
    )
)
