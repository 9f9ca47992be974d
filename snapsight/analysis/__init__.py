from snapsight.analysis.analyzer import ImageAnalyzer
from snapsight.analysis.client_base import BaseVisionClient
from snapsight.analysis.factory import AnalyzerFactory

__all__ = ["AnalyzerFactory", "BaseVisionClient", "ImageAnalyzer"]
