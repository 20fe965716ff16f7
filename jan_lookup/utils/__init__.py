# jan_lookup/utils/__init__.py
