"""
Marker scoring on AnnData objects.

Wraps :func:`score_markers` for cells x genes AnnData matrices, encoding
categorical ``obs`` columns as group and block ids and storing per-group
tables in ``adata.uns``.
"""

from typing import Optional, Union

import numpy as np
import pandas as pd
import scipy.sparse
from anndata import AnnData

from markerlab.core.exceptions import InvalidConfigError
from markerlab.utils import get_logger

from ._markers import ScoreMarkersResults, score_markers

logger = get_logger("markerlab.analysis")

__all__ = ["rank_markers"]


def _encode(adata: AnnData, key: str, label: str) -> tuple[np.ndarray, list[str]]:
    if key not in adata.obs.columns:
        raise InvalidConfigError(f"{label} column {key!r} not found in adata.obs")

    categories = pd.Categorical(adata.obs[key]).remove_unused_categories()
    codes = np.asarray(categories.codes, dtype=np.int64)
    if (codes < 0).any():
        raise InvalidConfigError(f"{label} column {key!r} contains missing values")
    return codes, [str(c) for c in categories.categories]


def rank_markers(
    adata: AnnData,
    groupby: str,
    *,
    block_key: Optional[str] = None,
    layer: Optional[str] = None,
    use_raw: bool = False,
    key_added: str = "score_markers",
    copy: bool = False,
    **score_kwargs,
) -> Union[ScoreMarkersResults, AnnData]:
    """
    Score marker genes for every group of cells.

    Args:
        adata: Annotated data matrix of shape n_obs x n_vars, holding
            log-normalized expression.
        groupby: Column of `adata.obs` defining the groups.
        block_key: Column of `adata.obs` defining blocks (e.g. batches);
            groups are compared within each block.
        layer: Layer to use instead of `X`.
        use_raw: Use `adata.raw.X`. Not compatible with `layer`.
        key_added: Key in `adata.uns` where results are stored.
        copy: Work on and return a copy of `adata`.
        **score_kwargs: Forwarded to :func:`score_markers` (`lfc_threshold`,
            `compute_auc`, `num_threads`, `config`, ...).

    Returns:
        The :class:`ScoreMarkersResults`, or the copied AnnData when
        `copy=True`. In both cases `adata.uns[key_added]` holds:

            - params: groupby, block_key, layer, use_raw and scoring options
            - names: group names, in group id order
            - results: dict of group name -> DataFrame indexed by `var_names`

    Examples:
        >>> import markerlab as ml
        >>> res = ml.analysis.rank_markers(adata, "leiden", num_threads=4)
        >>> adata.uns["score_markers"]["results"]["0"].sort_values("cohen_min_rank").head()
    """
    if copy:
        adata = adata.copy()

    if use_raw and layer is not None:
        raise InvalidConfigError("`use_raw=True` cannot be used together with `layer`")

    if use_raw:
        if adata.raw is None:
            raise InvalidConfigError("use_raw=True but adata.raw is None")
        X = adata.raw.X
        var_names = adata.raw.var_names
    elif layer is not None:
        if layer not in adata.layers:
            raise InvalidConfigError(f"Layer {layer!r} not found in adata.layers")
        X = adata.layers[layer]
        var_names = adata.var_names
    else:
        X = adata.X
        var_names = adata.var_names

    if X is None:
        raise InvalidConfigError("adata.X is None")

    groups, names = _encode(adata, groupby, "groupby")
    blocks = None
    block_names = None
    if block_key is not None:
        blocks, block_names = _encode(adata, block_key, "block_key")

    # Features in rows, cells in columns
    if scipy.sparse.issparse(X):
        matrix = X.T.tocsr()
    else:
        matrix = np.asarray(X).T

    logger.info(
        f"Ranking markers for {len(names)} groups of '{groupby}'"
        + (f" within {len(block_names)} blocks of '{block_key}'" if block_names else "")
    )
    results = score_markers(matrix, groups, blocks, **score_kwargs)

    feature_names = pd.Index(var_names).astype(str)
    adata.uns[key_added] = {
        "params": {
            "groupby": groupby,
            "block_key": block_key,
            "layer": layer,
            "use_raw": use_raw,
            **results.config.to_dict(),
        },
        "names": names,
        "results": {
            name: results.to_dataframe(g, feature_names=feature_names)
            for g, name in enumerate(names)
        },
    }
    logger.info(f"Marker results stored in adata.uns['{key_added}']")

    return adata if copy else results
