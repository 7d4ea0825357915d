"""Top-level package for the checkout application.

The domain lives in :mod:`catalog`, :mod:`cart` and :mod:`customer`; the
purchase transaction in :mod:`checkout`, with shipping fees in :mod:`fees`
and shipment notices in :mod:`shipping_service`.
"""
