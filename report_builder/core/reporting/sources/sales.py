"""Sales, invoicing and payment sources."""

from report_builder.core.reporting.catalog import (
    ColumnDef,
    ColumnType,
    SourceDefinition,
    register_source,
)

SALE_STATUSES = ("draft", "completed", "cancelled", "refunded")
PAYMENT_STATUSES = ("pending", "partial", "paid")
PAYMENT_METHODS = ("cash", "card", "transfer", "credit", "other")
INVOICE_STATUSES = ("draft", "issued", "paid", "partial", "void")

SALES = register_source(
    SourceDefinition(
        id="sales",
        label="Ventas",
        table_name="sales",
        default_date_column="sale_date",
        columns=(
            ColumnDef("id", "ID", ColumnType.STRING),
            ColumnDef("sale_date", "Fecha", ColumnType.DATE),
            ColumnDef("branch_id", "Sucursal", ColumnType.NUMBER),
            ColumnDef("customer_id", "Cliente", ColumnType.STRING),
            ColumnDef("user_id", "Vendedor", ColumnType.STRING),
            ColumnDef("subtotal", "Subtotal", ColumnType.NUMBER),
            ColumnDef("tax_total", "Impuestos", ColumnType.NUMBER),
            ColumnDef("discount_total", "Descuentos", ColumnType.NUMBER),
            ColumnDef("total", "Total", ColumnType.NUMBER),
            ColumnDef("status", "Estado", ColumnType.ENUM, SALE_STATUSES),
            ColumnDef("payment_status", "Estado de pago", ColumnType.ENUM, PAYMENT_STATUSES),
            ColumnDef("notes", "Notas", ColumnType.STRING),
        ),
    )
)

INVOICE_SALES = register_source(
    SourceDefinition(
        id="invoice_sales",
        label="Facturas de venta",
        table_name="invoice_sales",
        default_date_column="issue_date",
        columns=(
            ColumnDef("id", "ID", ColumnType.STRING),
            ColumnDef("number", "Número", ColumnType.STRING),
            ColumnDef("issue_date", "Fecha de emisión", ColumnType.DATE),
            ColumnDef("due_date", "Fecha de vencimiento", ColumnType.DATE),
            ColumnDef("customer_id", "Cliente", ColumnType.STRING),
            ColumnDef("branch_id", "Sucursal", ColumnType.NUMBER),
            ColumnDef("subtotal", "Subtotal", ColumnType.NUMBER),
            ColumnDef("tax_total", "Impuestos", ColumnType.NUMBER),
            ColumnDef("total", "Total", ColumnType.NUMBER),
            ColumnDef("balance", "Saldo", ColumnType.NUMBER),
            ColumnDef("status", "Estado", ColumnType.ENUM, INVOICE_STATUSES),
            ColumnDef("currency", "Moneda", ColumnType.STRING),
            ColumnDef("document_type", "Tipo de documento", ColumnType.STRING),
        ),
    )
)

PAYMENTS = register_source(
    SourceDefinition(
        id="payments",
        label="Pagos",
        table_name="payments",
        default_date_column="created_at",
        columns=(
            ColumnDef("id", "ID", ColumnType.STRING),
            ColumnDef("created_at", "Fecha", ColumnType.DATE),
            ColumnDef("branch_id", "Sucursal", ColumnType.NUMBER),
            ColumnDef("method", "Método", ColumnType.ENUM, PAYMENT_METHODS),
            ColumnDef("amount", "Monto", ColumnType.NUMBER),
            ColumnDef("reference", "Referencia", ColumnType.STRING),
            ColumnDef("is_refund", "Reembolso", ColumnType.BOOLEAN),
        ),
    )
)
