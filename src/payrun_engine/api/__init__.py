"""Pay run engine REST API."""
