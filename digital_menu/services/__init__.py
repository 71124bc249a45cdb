"""Business services: ordering, tables, payments, menu catalog, QR display and statistics."""
