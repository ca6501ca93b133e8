"""İlk kullanımda yüklenen varsayılan kullanıcılar ve örnek veriler."""

from __future__ import annotations

SAMPLE_PRODUCTS = [
    {
        "name": "Laptop Computer",
        "sku": "LAP001",
        "description": "High-performance business laptop",
        "costPrice": 8000,
        "sellingPrice": 12000,
        "stock": 25,
        "minimumStock": 5,
        "maximumStock": 100,
        "category": "Electronics",
        "location": "A1-001",
    },
    {
        "name": "Office Chair",
        "sku": "CHR001",
        "description": "Ergonomic office chair with lumbar support",
        "costPrice": 1500,
        "sellingPrice": 2500,
        "stock": 15,
        "minimumStock": 3,
        "maximumStock": 50,
        "category": "Furniture",
        "location": "B2-015",
    },
    {
        "name": "Wireless Mouse",
        "sku": "MOU001",
        "description": "Bluetooth wireless mouse",
        "costPrice": 200,
        "sellingPrice": 350,
        "stock": 50,
        "minimumStock": 10,
        "maximumStock": 200,
        "category": "Accessories",
        "location": "A1-025",
    },
]

SAMPLE_CUSTOMERS = [
    {
        "name": "ABC Corporation",
        "email": "contact@abc-corp.com",
        "phone": "+27 11 123 4567",
        "address": "123 Business Street, Johannesburg, 2000",
    },
    {
        "name": "XYZ Enterprises",
        "email": "info@xyz-ent.co.za",
        "phone": "+27 21 987 6543",
        "address": "456 Commerce Ave, Cape Town, 8000",
    },
]

SAMPLE_SUPPLIERS = [
    {
        "name": "Tech Distributors SA",
        "email": "sales@techsupply.co.za",
        "phone": "+27 11 555 0123",
        "address": "789 Industrial Road, Midrand, 1685",
        "contactPerson": "John Smith",
        "paymentTerms": "Net 30",
    },
]


def default_users(admin_email: str, admin_password: str, warehouse_email: str, warehouse_password: str) -> list[dict]:
    return [
        {"email": admin_email, "password": admin_password, "role": "admin", "username": "Administrator"},
        {"email": warehouse_email, "password": warehouse_password, "role": "warehouse", "username": "Warehouse Manager"},
    ]
