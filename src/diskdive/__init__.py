"""diskdive - interactive disk usage analyzer."""

__version__ = "0.3.0"
