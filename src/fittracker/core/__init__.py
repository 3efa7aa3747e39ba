"""Core domain logic: models, prescription grammar, estimators and workout flow."""
