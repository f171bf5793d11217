"""
PromptStyle - trailer prompt builder package.

This package contains:
- prompt_builder: option catalog, prompt composer, and the headless session layer.
- storage: key-value namespaces plus preset and UI snapshot persistence.
- config_service: YAML/JSON settings shared by the CLI and session.
"""
