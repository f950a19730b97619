"""
Datasets for the worked examples.

Two simulated datasets with known structure (so the lessons can check
estimates against the truth) and a CSV loader that accepts a local path
or a URL, caching downloads under DATA_DIR.
"""

import io
import os
from pathlib import Path
from urllib.parse import urlparse

import numpy as np
import pandas as pd
import requests

DATA_DIR = Path(os.environ.get("APPLIEDSTATS_DATA_DIR",
                               Path(__file__).resolve().parent.parent / "data"))

BOROUGHS = ["Bronx", "Brooklyn", "Manhattan", "Queens", "Staten Island"]

# Borough-level intercepts and per-log-sqft slopes of log sale price
BOROUGH_EFFECTS = {
    "Bronx":         (9.2, 0.55),
    "Brooklyn":      (9.6, 0.70),
    "Manhattan":     (10.4, 0.95),
    "Queens":        (9.5, 0.60),
    "Staten Island": (9.4, 0.50),
}
BOROUGH_SHARES = [0.15, 0.30, 0.15, 0.28, 0.12]

ADMISSIONS_COEFS = dict(intercept=-3.99, gre=0.00226, gpa=0.804,
                        rank2=-0.675, rank3=-1.34, rank4=-1.55)


def simulate_housing(n=2000, seed=42):
    """
    Simulate NYC-style residential property sales.

    DGP:
        borough   ~ categorical(BOROUGH_SHARES)
        log_sqft  ~ N(7.3, 0.45)
        year_built ~ U{1900..2015}
        log_price = a_b + s_b * (log_sqft - 7.3)
                    + 0.25 * sin((year_built - 1900) / 18)
                    + 0.08 * log_land_sqft + eps,  eps ~ N(0, 0.35)

    where (a_b, s_b) come from BOROUGH_EFFECTS. The sine term gives the
    GAM lesson a nonlinear age effect.

    Returns
    -------
    DataFrame with columns borough, gross_sqft, land_sqft, year_built,
    log_sqft, log_land_sqft, sale_price, log_price.
    """
    rng = np.random.default_rng(seed)
    borough = rng.choice(BOROUGHS, size=n, p=BOROUGH_SHARES)
    log_sqft = rng.normal(7.3, 0.45, n)
    log_land = rng.normal(7.6, 0.5, n)
    year_built = rng.integers(1900, 2016, n)

    a = np.array([BOROUGH_EFFECTS[b][0] for b in borough])
    s = np.array([BOROUGH_EFFECTS[b][1] for b in borough])
    log_price = (a + s * (log_sqft - 7.3)
                 + 0.25 * np.sin((year_built - 1900) / 18)
                 + 0.08 * log_land
                 + rng.normal(0, 0.35, n))

    return pd.DataFrame(dict(
        borough=pd.Categorical(borough, categories=BOROUGHS),
        gross_sqft=np.round(np.exp(log_sqft)),
        land_sqft=np.round(np.exp(log_land)),
        year_built=year_built,
        log_sqft=log_sqft,
        log_land_sqft=log_land,
        sale_price=np.round(np.exp(log_price), -2),
        log_price=log_price,
    ))


def simulate_admissions(n=400, seed=42):
    """
    Simulate graduate-school admissions.

    DGP:
        gre ~ N(590, 115) clipped to [220, 800]
        gpa ~ N(3.4, 0.38) clipped to [2.2, 4.0]
        rank ~ categorical {1, 2, 3, 4} (institution prestige, 1 = highest)
        logit P(admit) = ADMISSIONS_COEFS . (1, gre, gpa, rank dummies)

    Returns
    -------
    DataFrame with columns admit (0/1), gre, gpa, rank (string category).
    """
    rng = np.random.default_rng(seed)
    gre = np.clip(np.round(rng.normal(590, 115, n), -1), 220, 800)
    gpa = np.clip(np.round(rng.normal(3.4, 0.38, n), 2), 2.2, 4.0)
    rank = rng.choice([1, 2, 3, 4], size=n, p=[0.15, 0.38, 0.30, 0.17])

    c = ADMISSIONS_COEFS
    eta = (c["intercept"] + c["gre"] * gre + c["gpa"] * gpa
           + c["rank2"] * (rank == 2) + c["rank3"] * (rank == 3)
           + c["rank4"] * (rank == 4))
    p = 1 / (1 + np.exp(-eta))
    admit = (rng.uniform(size=n) < p).astype(int)

    return pd.DataFrame(dict(admit=admit, gre=gre, gpa=gpa,
                             rank=rank.astype(str)))


def _is_url(source):
    return urlparse(str(source)).scheme in ("http", "https")


def load_csv(source, cache_dir=None, refresh=False, **read_kwargs):
    """
    Read a CSV from a local path or an http(s) URL.

    Downloads are stored in `cache_dir` (default DATA_DIR) under the URL's
    file name and reused on later calls unless `refresh` is set.

    Raises
    ------
    FileNotFoundError : local path does not exist
    ConnectionError   : download failed
    """
    if not _is_url(source):
        path = Path(source)
        if not path.exists():
            raise FileNotFoundError(f"CSV not found: {path}")
        return pd.read_csv(path, **read_kwargs)

    cache_dir = Path(cache_dir) if cache_dir is not None else DATA_DIR
    name = Path(urlparse(source).path).name or "download.csv"
    cached = cache_dir / name
    if cached.exists() and not refresh:
        print(f"  [Data] using cached {cached}")
        return pd.read_csv(cached, **read_kwargs)

    print(f"  [Data] downloading {source} ...")
    try:
        resp = requests.get(source, timeout=60)
        resp.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise ConnectionError(f"Could not download {source}: {e}") from e

    cache_dir.mkdir(parents=True, exist_ok=True)
    cached.write_bytes(resp.content)
    return pd.read_csv(io.BytesIO(resp.content), **read_kwargs)
