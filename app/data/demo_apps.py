"""
Catalog served when no Supabase project is configured (local development and
demos). Never used by a deployment with credentials.
"""

DEMO_APPS = [
    {
        "id": "hr-portal",
        "name": "HR Portal",
        "description": "Manage employee records, onboarding, and benefits",
        "icon": "users",
        "color": "hsl(220, 70%, 50%)",
        "category": "primary",
        "display_order": 1,
    },
    {
        "id": "finance-system",
        "name": "Finance System",
        "description": "Budget tracking, invoices, and expense reports",
        "icon": "dollar-sign",
        "color": "hsl(142, 70%, 45%)",
        "category": "primary",
        "display_order": 2,
    },
    {
        "id": "inventory-manager",
        "name": "Inventory Manager",
        "description": "Track stock levels and manage supply chain",
        "icon": "package",
        "color": "hsl(25, 90%, 55%)",
        "category": "primary",
        "display_order": 3,
    },
    {
        "id": "document-hub",
        "name": "Document Hub",
        "description": "Company policies, templates, and shared files",
        "icon": "file-text",
        "color": "hsl(280, 65%, 55%)",
        "category": "secondary",
        "display_order": 4,
    },
    {
        "id": "meeting-scheduler",
        "name": "Meeting Scheduler",
        "description": "Book rooms and coordinate team calendars",
        "icon": "calendar",
        "color": "hsl(340, 75%, 55%)",
        "category": "secondary",
        "display_order": 5,
    },
    {
        "id": "analytics-dashboard",
        "name": "Analytics Dashboard",
        "description": "Business intelligence and performance metrics",
        "icon": "bar-chart-3",
        "color": "hsl(200, 80%, 50%)",
        "category": "secondary",
        "display_order": 6,
    },
]
