"""
Report generation modules

Exports:
- write_pipeline_report: Write the pipeline export workbook
"""

from .excel import write_pipeline_report

__all__ = ['write_pipeline_report']
