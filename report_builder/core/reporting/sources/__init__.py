"""Built-in report sources. Importing this package registers them."""

from report_builder.core.reporting.sources import customers, inventory, sales  # noqa: F401
