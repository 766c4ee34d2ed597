"""Sales invoice endpoints"""

from bizbooks.domain.normalization import normalize_sale
from bizbooks.domain.pricing import build_sale_payload
from bizbooks.infrastructure.clients.documents import DocumentClient
from bizbooks.infrastructure.clients.http import SALES_POLICY


class SalesClient(DocumentClient):
    """Client for /sales; every call retries with linear backoff"""

    resource = "sales"
    number_endpoint = "next-invoice-number"
    type_param = "invoiceType"
    number_prefix = "INV"
    collection_keys = ("sales", "invoices")
    record_keys = ("sale", "invoice")
    normalize = staticmethod(normalize_sale)
    build_payload = staticmethod(build_sale_payload)

    read_policy = SALES_POLICY
    write_policy = SALES_POLICY

    list_invoices = DocumentClient.list_documents
    get_invoice = DocumentClient.get_document
    create_invoice = DocumentClient.create_document
    update_invoice = DocumentClient.update_document
    delete_invoice = DocumentClient.delete_document
    get_next_invoice_number = DocumentClient.get_next_number
    complete_sale = DocumentClient.complete
