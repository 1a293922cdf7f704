"""rig - multi-cloud infrastructure assistant CLI

Philosophy:
- One operation surface for every cloud provider
- Reads degrade gracefully, writes fail loudly
- Read-only by default (management mode is an explicit opt-in)
- No credentials in code (delegated to SDK environment and CLI sessions)

The rig CLI lists, creates and deletes resources on AWS, GCP and Azure through
a single provider abstraction, and offers an interactive assistant session
backed by an AI troubleshooting helper.
"""

__version__ = "1.0.0"
__all__ = ["__version__"]
