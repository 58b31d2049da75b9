"""
Pipeline module for IMB address processing.

Provides the record queue, the batch step and work loop that drive records
through an address normalizer, and export of the results. The functions
take the queue, configuration and normalizer explicitly so they can be run
from the CLI or embedded in other tooling.
"""
