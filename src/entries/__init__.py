"""Entry building: slot predictions to canonical entries, previews and user-owned records."""
