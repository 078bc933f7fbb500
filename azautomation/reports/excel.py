import os
import logging
from typing import List

import pandas as pd
from openpyxl.utils import get_column_letter

from ..models.pipeline import BASE_COLUMNS, PipelineRecord
from ..utils.logger import ColorPrinter

logger = logging.getLogger("azautomation.reports")

MAX_COLUMN_WIDTH = 80


def write_pipeline_report(records: List[PipelineRecord], output_path: str,
                          sheet_name: str = "Pipelines") -> str:
    """Write one row per pipeline to an Excel workbook

    An empty listing still produces a sheet with the header row.
    """
    rows = [record.to_row() for record in records]
    df = pd.DataFrame(rows)
    extra_columns = [col for col in df.columns if col not in BASE_COLUMNS]
    df = df.reindex(columns=BASE_COLUMNS + extra_columns)

    output_dir = os.path.dirname(output_path)
    if output_dir:
        os.makedirs(output_dir, exist_ok=True)

    with pd.ExcelWriter(output_path, engine='openpyxl') as writer:
        df.to_excel(writer, index=False, sheet_name=sheet_name)
        worksheet = writer.sheets[sheet_name]
        for idx, column in enumerate(df.columns, start=1):
            values = [str(column)] + [str(v) for v in df[column].tolist() if v is not None]
            width = min(max(len(v) for v in values) + 2, MAX_COLUMN_WIDTH)
            worksheet.column_dimensions[get_column_letter(idx)].width = width

    logger.info(f"Wrote {len(rows)} pipelines to {output_path}")
    ColorPrinter.print_success(f"Report generated: {output_path}")
    return output_path
