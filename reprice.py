"""Repricing loop — raise prices of steady sellers on a store's inventory.

Reads the products that sold in at least REPRICE_MIN_MONTHS distinct
calendar months of the repricing window from the local database, then
applies an atomic ``precio = precio + increment`` update on the remote
store's inventario table.  The update repeats until the operator answers
"n" at the prompt.

Usage:
    python reprice.py --store 2
"""

import argparse
import sys
from typing import Callable, List, Optional, Sequence, Tuple

import psycopg2

from config import (
    LOCAL_DATABASE_URL, REMOTE_DATABASE_URL,
    REPRICE_INCREMENT, REPRICE_MIN_MONTHS, REPRICE_WINDOW_END, REPRICE_WINDOW_START,
    get_store_id,
)
from errors import LoadError, TicketsETLError
from logger_config import setup_logger

logger = setup_logger(__name__)

PROMPT = "\n Volver a actualizar los precios: (s/n) "

QUALIFYING_PRODUCTS_SQL = """
    SELECT td.idproducto
    FROM ticketsd td
    INNER JOIN ticketsh th ON td.ticket = th.folio
    WHERE th.fecha >= %s AND th.fecha <= %s
    GROUP BY td.idproducto
    HAVING COUNT(DISTINCT DATE_TRUNC('month', th.fecha)) >= %s
"""

PRICE_INCREASE_SQL = """
    UPDATE inventario
    SET precio = precio + %s
    WHERE idsucursal = %s
      AND idproducto = ANY(%s)
    RETURNING idproducto, precio
"""


def _connect(url: str, label: str):
    try:
        return psycopg2.connect(url)
    except psycopg2.Error as exc:
        raise LoadError(f"Could not connect to the {label} database", exc) from exc


def fetch_qualifying_products(
    conn,
    start: str = REPRICE_WINDOW_START,
    end: str = REPRICE_WINDOW_END,
    min_months: int = REPRICE_MIN_MONTHS,
) -> List[int]:
    """Products sold in at least ``min_months`` distinct months between ``start`` and ``end``."""
    try:
        with conn.cursor() as cur:
            cur.execute(QUALIFYING_PRODUCTS_SQL, (start, end, min_months))
            return [row[0] for row in cur.fetchall()]
    except psycopg2.Error as exc:
        raise LoadError("Qualifying product query failed", exc) from exc


def apply_price_increase(
    conn,
    store_id: int,
    products: Sequence[int],
    increment: int = REPRICE_INCREMENT,
) -> List[Tuple[int, int]]:
    """Increment the price of ``products`` in one statement; returns the (product, new price) pairs."""
    try:
        with conn.cursor() as cur:
            cur.execute(PRICE_INCREASE_SQL, (increment, store_id, list(products)))
            updated = cur.fetchall()
        conn.commit()
    except psycopg2.Error as exc:
        conn.rollback()
        raise LoadError(f"Price update for store {store_id} failed", exc) from exc

    for product_id, price in updated:
        logger.info(f"  ID Producto: {product_id}, Nuevo Precio: {price}")
    return updated


def run(
    store_id: int,
    confirm: Callable[[str], str] = input,
    local_url: Optional[str] = None,
    remote_url: Optional[str] = None,
) -> int:
    """
    Query qualifying products once, then reprice until the operator declines.

    Returns the number of update rounds applied (0 when nothing qualifies).
    """
    local = _connect(local_url or LOCAL_DATABASE_URL, "local")
    try:
        products = fetch_qualifying_products(local)
    finally:
        local.close()

    if not products:
        logger.info("No product meets the repricing condition")
        return 0
    logger.info(f"  [OK] {len(products):,} qualifying products")

    remote = _connect(remote_url or REMOTE_DATABASE_URL, "remote")
    rounds = 0
    try:
        while True:
            apply_price_increase(remote, store_id, products)
            rounds += 1
            if confirm(PROMPT).strip().lower() == "n":
                break
    finally:
        remote.close()

    logger.info(f"Repricing finished after {rounds} round(s)")
    return rounds


def main(argv=None):
    parser = argparse.ArgumentParser(description="Raise prices of steady sellers on a store's inventory")
    parser.add_argument("--store", help="Target store id (default: TICKETS_STORE)")
    args = parser.parse_args(argv)

    try:
        run(get_store_id(args.store))
    except TicketsETLError as e:
        logger.error(f"Repricing failed: {e}")
        sys.exit(1)


if __name__ == "__main__":
    main()
