# -*- coding: utf-8 -*-
"""
Summary of the datasets stored inside a folder.
"""
import logging
import os
from typing import Any, Dict, List

import pandas as pd

logger = logging.getLogger(__name__)

SEPARATOR = "------------------------------------------------"
HEADER = "Summary of databases inside the provided folder."


def _load_objects(path: str, filename: str) -> Dict[str, Any]:
    """
    Load the named objects stored in a pickle file.

    A pickled mapping contributes one object per key; any other pickled
    object is named after the file.
    """
    content = pd.read_pickle(path)
    if isinstance(content, dict):
        return dict(content)
    return {os.path.splitext(filename)[0]: content}


def _column_names(obj: Any) -> List[str]:
    if isinstance(obj, pd.DataFrame):
        return [str(c) for c in obj.columns]
    if isinstance(obj, dict):
        return [str(k) for k in obj]
    return []


def db_summarize(path_data, filename="summary-databases.txt"):
    """
    Writes a summary of the pickled datasets found in a folder.

    For every ``*.pkl`` file (in sorted order) the report lists the stored
    objects and their column names::

        1) Pickle file: iris.pkl
        1.1) Object: iris
        sepal_length sepal_width petal_length petal_width species

    Objects without column names are left out.

    Args:
        path_data (str): Folder to look for pickle files in.
        filename (str): Report file to write.

    Returns:
        str: ``path_data``.
    """
    databases = sorted(f for f in os.listdir(path_data) if f.endswith(".pkl"))
    if not databases:
        logger.warning("No pickle files found in %s", path_data)

    lines = [SEPARATOR, HEADER, SEPARATOR]
    for i, database in enumerate(databases, start=1):
        lines.append(f"\n{i}) Pickle file: {database}")
        objects = _load_objects(os.path.join(path_data, database), database)
        for j, (obj_name, obj) in enumerate(objects.items(), start=1):
            var_names = _column_names(obj)
            if not var_names:
                continue
            lines.append(f"{i}.{j}) Object: {obj_name}")
            lines.append(" ".join(var_names))

    with open(filename, "w", encoding="utf-8") as f:
        f.write("\n".join(lines) + "\n")
    logger.info("Summary of %d files written to %s", len(databases), filename)
    return path_data
