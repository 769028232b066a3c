"""
CMR Delivery Note Extraction - Source Package.

This package turns scanned CMR shipment PDFs into a reviewable table of
delivery notes. Each subpackage has a single responsibility.

Modules:
    - input_handler: PDF ingestion and page rendering
    - extraction: HTTP boundary to the vision extraction service
    - pipeline: Page tasks, dedupe, bounded scheduler and progress
    - postprocessor: Field derivation and warnings
    - output_handler: Result store, persisted state and exports
    - utils: Logging, exceptions and helpers

Architecture:
    PDF -> Pages -> Extraction Service -> Dedupe -> Derivation -> Store
                                                                   |
                                                          CSV / TSV / XLSX
"""

__version__ = "1.0.0"
__author__ = "ML Engineering Team"

__all__ = [
    'input_handler',
    'extraction',
    'pipeline',
    'postprocessor',
    'output_handler',
    'utils',
]
