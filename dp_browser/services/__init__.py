"""
Service layer: data source registry, binding resolution, search debounce
and dataset storage
"""
