# jan_lookup/delegates/__init__.py

# This file makes the delegate classes directly available from the 'delegates' package.
# Instead of: from jan_lookup.delegates.web_page_delegate import BrowserPageDelegate
# We can now use: from jan_lookup.delegates import BrowserPageDelegate

from .web_page_delegate import BrowserPageDelegate
from .page_adapter import PageAdapter, PageHost
from .product_store_delegate import JsonProductStore
