"""Configuration package.

Module split:
    - `provider_config`: environment-driven endpoints, model defaults, key files.
    - `preferences`: JSON preference store persisted across runs.
"""
