"""Vendor-neutral core package.

Composition:
    - `json_path`: best-effort get/set of values addressed by dotted/bracket paths.
    - `masking`: schema-driven replacement of embedded base64 payloads.
    - `artifacts`: directory-creating file writer and masked JSON persistence.
    - `types`: result/option records and the closed `ResponseKind`/`ErrorKind` sets.

Determinism and side effects:
    Only `artifacts` touches the filesystem. Everything else is pure.
"""
