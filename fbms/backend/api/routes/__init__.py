"""Route modules, one per business area; gathered by ``fbms.backend.api.router``."""
