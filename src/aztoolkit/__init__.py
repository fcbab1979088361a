"""aztoolkit - Azure resource modules with cached, draft-based lifecycles

Philosophy:
- One generic module framework, thin per-service adapters
- Synchronous public API, blocking on the Azure SDK underneath
- Explicit state: every resource carries a Status and a remote state
- Fail loudly on mutations, stay quiet on legitimately empty listings

The framework lazily loads and caches paged Azure listings, reconciles local
drafts with remote state, and exposes a Kudu client for web app file and
process operations.
"""

__version__ = "0.1.0"
__all__ = ["__version__"]
