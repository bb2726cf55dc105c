"""Tax year configuration: YAML files, schema models, and loaders."""
