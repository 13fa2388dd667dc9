from crm_domain.admin.models import DocumentTemplate, NotificationPreference, OCRTemplate, OCRTemplateField
from crm_domain.business.billing.models import Invoice, InvoiceItem, InvoiceLineItem
from crm_domain.business.catalog.models import Product, ProductAttribute, ProductAttributeValue
from crm_domain.business.procurement.models import PurchaseOrder, PurchaseOrderItem
from crm_domain.business.revenue.models import Delivery, Order, OrderLineItem, OrderProduct, Quote, QuoteLineItem, QuoteProduct
from crm_domain.business.territory.models import Territory, TerritoryRecord
from crm_domain.communication.models import (
    EmailProgram,
    EmailProgramBounce,
    EmailProgramRecipient,
    EmailProgramUnsubscribe,
    SecurityGroupBroadcastMessage,
    SecurityGroupMessageAcknowledgment,
)
from crm_domain.crm.associations import Address, Email, Label, NotableEntry, Tag, Taggable
from crm_domain.crm.models import (
    Company,
    CompanyPerson,
    Contact,
    ContactMergeLog,
    ContactPersona,
    ContactRole,
    Customer,
    Deal,
    Group,
    Opportunity,
    Organisation,
    People,
    Person,
    PortalUser,
    Team,
    User,
)
from crm_domain.engagement.knowledge.models import KnowledgeArticle, KnowledgeArticleRelation, KnowledgeTag
from crm_domain.engagement.tasks.models import SavedSearch, Task, TaskChecklistItem, TaskRecurrence, TaskReminder
from crm_domain.platform import guards  # noqa: F401
from crm_domain.platform.custom_fields import CustomField, CustomFieldGroup, CustomFieldValue
from crm_domain.platform.feature_flags import FeatureFlagSegment
from crm_domain.platform.reference import LeadSource
from crm_domain.models.observers import register_default_observers
from crm_domain.models.registry import EntityKind, morph_key_for, resolve_model, resolve_reference

register_default_observers()

__all__ = [
    "Address",
    "Company",
    "CompanyPerson",
    "Contact",
    "ContactMergeLog",
    "ContactPersona",
    "ContactRole",
    "CustomField",
    "CustomFieldGroup",
    "CustomFieldValue",
    "Customer",
    "Deal",
    "Delivery",
    "DocumentTemplate",
    "Email",
    "EmailProgram",
    "EmailProgramBounce",
    "EmailProgramRecipient",
    "EmailProgramUnsubscribe",
    "EntityKind",
    "FeatureFlagSegment",
    "Group",
    "Invoice",
    "InvoiceItem",
    "InvoiceLineItem",
    "KnowledgeArticle",
    "KnowledgeArticleRelation",
    "KnowledgeTag",
    "Label",
    "LeadSource",
    "NotableEntry",
    "NotificationPreference",
    "OCRTemplate",
    "OCRTemplateField",
    "Opportunity",
    "Order",
    "OrderLineItem",
    "OrderProduct",
    "Organisation",
    "People",
    "Person",
    "PortalUser",
    "Product",
    "ProductAttribute",
    "ProductAttributeValue",
    "PurchaseOrder",
    "PurchaseOrderItem",
    "Quote",
    "QuoteLineItem",
    "QuoteProduct",
    "SavedSearch",
    "SecurityGroupBroadcastMessage",
    "SecurityGroupMessageAcknowledgment",
    "Tag",
    "Taggable",
    "Task",
    "TaskChecklistItem",
    "TaskRecurrence",
    "TaskReminder",
    "Team",
    "Territory",
    "TerritoryRecord",
    "User",
    "morph_key_for",
    "resolve_model",
    "resolve_reference",
]
