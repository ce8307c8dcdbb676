"""Schema package – re-exports all public symbols for convenient imports."""

from __future__ import annotations

from fbms.backend.schemas.auth import (
    ChangePasswordIn,
    LoginIn,
    RegisterIn,
    TokenOut,
    UserOut,
    UserUpdateIn,
)
from fbms.backend.schemas.base import (
    MessageOut,
    ORMModel,
)
from fbms.backend.schemas.finance import (
    AccountIn,
    AccountOut,
    ComputePayrollIn,
    EmployeeIn,
    EmployeeOut,
    EmployeeUpdate,
    ExpenseCategoryIn,
    ExpenseCategoryOut,
    ExpenseIn,
    ExpenseOut,
    ExpenseUpdate,
    JournalEntryIn,
    JournalEntryOut,
    JournalLineIn,
    JournalLineOut,
    PayrollEntryOut,
    PayrollInputIn,
    PayrollPeriodIn,
    PayrollPeriodOut,
    RejectIn,
)
from fbms.backend.schemas.inventory import (
    CategoryIn,
    CategoryOut,
    ProductIn,
    ProductOut,
    ProductUpdate,
    StockAdjustmentIn,
    StockCountIn,
    StockMovementOut,
)
from fbms.backend.schemas.purchasing import (
    ApprovalIn,
    POActionIn,
    POApprovalOut,
    POItemIn,
    POItemOut,
    POTransitionOut,
    PriceVarianceOut,
    PurchaseOrderIn,
    PurchaseOrderOut,
    ReceiveIn,
    ReceiveItemIn,
    ReceivingRecordOut,
    SupplierIn,
    SupplierOut,
)
from fbms.backend.schemas.sales import (
    CartCustomerIn,
    CartItemIn,
    CartLineOut,
    CartModeIn,
    CartOut,
    CartQuantityIn,
    CheckoutIn,
    CustomerIn,
    CustomerOut,
    CustomerStatsOut,
    CustomerUpdate,
    DiscountIn,
    DiscountOut,
    HeldCartOut,
    HoldCartIn,
    LoyaltyAdjustIn,
    ReceiptOut,
    RedeemPointsIn,
    SaleItemOut,
    SaleOut,
    VoidSaleIn,
)
from fbms.backend.schemas.system import (
    AuditLogOut,
    BackupIn,
    BackupOut,
    BackupStatusOut,
    BackupVerifyOut,
    HealthOut,
    SettingsIn,
    SettingsOut,
)

__all__ = [
    "AccountIn",
    "AccountOut",
    "ApprovalIn",
    "AuditLogOut",
    "BackupIn",
    "BackupOut",
    "BackupStatusOut",
    "BackupVerifyOut",
    "CartCustomerIn",
    "CartItemIn",
    "CartLineOut",
    "CartModeIn",
    "CartOut",
    "CartQuantityIn",
    "CategoryIn",
    "CategoryOut",
    "ChangePasswordIn",
    "CheckoutIn",
    "ComputePayrollIn",
    "CustomerIn",
    "CustomerOut",
    "CustomerStatsOut",
    "CustomerUpdate",
    "DiscountIn",
    "DiscountOut",
    "EmployeeIn",
    "EmployeeOut",
    "EmployeeUpdate",
    "ExpenseCategoryIn",
    "ExpenseCategoryOut",
    "ExpenseIn",
    "ExpenseOut",
    "ExpenseUpdate",
    "HealthOut",
    "HeldCartOut",
    "HoldCartIn",
    "JournalEntryIn",
    "JournalEntryOut",
    "JournalLineIn",
    "JournalLineOut",
    "LoginIn",
    "LoyaltyAdjustIn",
    "MessageOut",
    "ORMModel",
    "POActionIn",
    "POApprovalOut",
    "POItemIn",
    "POItemOut",
    "POTransitionOut",
    "PayrollEntryOut",
    "PayrollInputIn",
    "PayrollPeriodIn",
    "PayrollPeriodOut",
    "PriceVarianceOut",
    "ProductIn",
    "ProductOut",
    "ProductUpdate",
    "PurchaseOrderIn",
    "PurchaseOrderOut",
    "ReceiptOut",
    "ReceiveIn",
    "ReceiveItemIn",
    "ReceivingRecordOut",
    "RedeemPointsIn",
    "RegisterIn",
    "RejectIn",
    "SaleItemOut",
    "SaleOut",
    "SettingsIn",
    "SettingsOut",
    "StockAdjustmentIn",
    "StockCountIn",
    "StockMovementOut",
    "SupplierIn",
    "SupplierOut",
    "TokenOut",
    "UserOut",
    "UserUpdateIn",
    "VoidSaleIn",
]
