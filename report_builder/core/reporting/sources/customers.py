"""Customer and receivables sources."""

from report_builder.core.reporting.catalog import (
    ColumnDef,
    ColumnType,
    SourceDefinition,
    register_source,
)

CUSTOMERS = register_source(
    SourceDefinition(
        id="customers",
        label="Clientes",
        table_name="customers",
        default_date_column="created_at",
        columns=(
            ColumnDef("id", "ID", ColumnType.STRING),
            ColumnDef("full_name", "Nombre completo", ColumnType.STRING),
            ColumnDef("email", "Correo", ColumnType.STRING),
            ColumnDef("phone", "Teléfono", ColumnType.STRING),
            ColumnDef("city", "Ciudad", ColumnType.STRING),
            ColumnDef("is_active", "Activo", ColumnType.BOOLEAN),
            ColumnDef("created_at", "Fecha de registro", ColumnType.DATE),
        ),
    )
)

ACCOUNTS_RECEIVABLE = register_source(
    SourceDefinition(
        id="accounts_receivable",
        label="Cuentas por cobrar",
        table_name="accounts_receivable",
        default_date_column="due_date",
        columns=(
            ColumnDef("id", "ID", ColumnType.STRING),
            ColumnDef("customer_id", "Cliente", ColumnType.STRING),
            ColumnDef("due_date", "Vencimiento", ColumnType.DATE),
            ColumnDef("amount", "Monto", ColumnType.NUMBER),
            ColumnDef("balance", "Saldo", ColumnType.NUMBER),
            ColumnDef("days_overdue", "Días de mora", ColumnType.NUMBER),
            ColumnDef("status", "Estado", ColumnType.ENUM, ("open", "partial", "paid", "overdue")),
        ),
    )
)
