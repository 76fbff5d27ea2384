"""
Execution core and its concurrency facades.

Import facades from their modules (`clients.callback`, `clients.streaming`,
`clients.async_client`, `clients.reactive`); this package stays import-free so the
transport and streaming layers can depend on `clients.pipeline` without cycles.
"""
