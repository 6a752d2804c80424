"""Condolence-gift envelope OCR.

Turns photographs of up to four faces of a funeral gift envelope into a
structured donation record: payer name, company, title, address, face and
enclosed amounts, and the ritual donation type written on the front.
"""

__version__ = "1.0.0"
