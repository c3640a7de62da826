from .catalog import TaxRate, Product, PaymentMethod
from .reports import ZReport
from .sales import Sale, SaleLine, Payment, SaleClosedError

__all__ = [
    'TaxRate', 'Product', 'PaymentMethod',
    'ZReport',
    'Sale', 'SaleLine', 'Payment', 'SaleClosedError',
]
