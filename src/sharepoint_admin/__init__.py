"""Administrative façade over the SharePoint Online REST API."""

__version__ = "0.1.0"
