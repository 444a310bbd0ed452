"""Domain models, configuration, themes and workflows."""
