"""导出模块：可检索 PDF 组装。"""

from .pdf import ExportResult, PdfAssembler, export_searchable_pdf

__all__ = ["ExportResult", "PdfAssembler", "export_searchable_pdf"]
