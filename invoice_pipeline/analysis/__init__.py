from invoice_pipeline.analysis.analyzer import FallbackAnalysisPolicy, InvoiceAnalyzer
from invoice_pipeline.analysis.factory import AnalyzerFactory

__all__ = ["AnalyzerFactory", "FallbackAnalysisPolicy", "InvoiceAnalyzer"]
