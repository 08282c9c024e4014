"""gherkin-core: Gherkin parsing, pickle compilation, and step matching."""

__version__ = "0.1.0"
