"""Input classification and confidence scoring."""
