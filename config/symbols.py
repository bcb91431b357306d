"""Default scan basket: Nifty 50 constituents listed on BSE."""

NIFTY_50 = [
    "RELIANCE.BSE", "TCS.BSE", "HDFCBANK.BSE", "INFY.BSE", "HINDUNILVR.BSE",
    "ICICIBANK.BSE", "ITC.BSE", "KOTAKBANK.BSE", "SBIN.BSE", "ASIANPAINT.BSE",
    "LT.BSE", "MARUTI.BSE", "AXISBANK.BSE", "BAJFINANCE.BSE", "WIPRO.BSE",
    "ONGC.BSE", "SUNPHARMA.BSE", "BHARTIARTL.BSE", "NESTLEIND.BSE", "ULTRACEMCO.BSE",
    "LUPIN.BSE", "BAJAJ-AUTO.BSE", "HCLTECH.BSE", "INDUSINDBK.BSE", "DRREDDY.BSE",
    "M&M.BSE", "TATASTEEL.BSE", "IOC.BSE", "POWERGRID.BSE", "NTPC.BSE",
    "COALINDIA.BSE", "ADANIPORTS.BSE", "TECHM.BSE", "JSWSTEEL.BSE", "TITAN.BSE",
    "HEROMOTOCO.BSE", "GAIL.BSE", "BPCL.BSE", "SBILIFE.BSE", "HDFCLIFE.BSE",
    "CIPLA.BSE", "GRASIM.BSE", "SHREECEM.BSE", "DIVISLAB.BSE", "UPL.BSE",
    "BRITANNIA.BSE", "EICHERMOT.BSE", "HINDALCO.BSE", "VEDL.BSE",
]


def parse_symbols(raw: str) -> list[str]:
    """Split a comma-separated symbol list, dropping blanks and duplicates.

    Order is preserved; it is the tie-break order of the ranked output.
    """
    symbols: list[str] = []
    for item in raw.split(","):
        symbol = item.strip().upper()
        if symbol and symbol not in symbols:
            symbols.append(symbol)
    return symbols


def display_symbol(symbol: str) -> str:
    """Strip the exchange suffix (``RELIANCE.BSE`` -> ``RELIANCE``)."""
    return symbol.split(".")[0]
