"""GrindFlow study-notes API."""
