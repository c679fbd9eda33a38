"""XBRL concept → canonical banking metric mappings.

Each canonical field maps to an ordered fallback chain of XBRL tags.
The extractor walks the chain and stops at the first tag that yields a
value, so the order encodes preference (most specific / most common first).

Units matter: monetary concepts report under ``USD``, per-share concepts
under ``USD/shares`` and share counts under ``shares``.  A chain entry
carries its own taxonomy and unit so a single chain can mix ``us-gaap``
and ``dei`` tags (shares outstanding lives on the dei cover page too).
"""

from __future__ import annotations

from typing import NamedTuple

USD = "USD"
USD_PER_SHARE = "USD/shares"
SHARES = "shares"


# ═══════════════════════════════════════════════════════════════════════════
#  Bank classification (SIC)
# ═══════════════════════════════════════════════════════════════════════════

# 6020-6029 commercial banks, 6035/6036 savings institutions
BANK_SIC_CODES: frozenset[str] = frozenset({
    "6020", "6021", "6022", "6029",
    "6035", "6036",
})


def is_bank_sic(sic_code: str | int | None) -> bool:
    """True when the SIC code belongs to a commercial bank or thrift."""
    if sic_code is None:
        return False
    return str(sic_code).strip() in BANK_SIC_CODES


# ═══════════════════════════════════════════════════════════════════════════
#  Concept entry
# ═══════════════════════════════════════════════════════════════════════════

class ConceptEntry(NamedTuple):
    xbrl_concept: str           # tag name (without taxonomy prefix)
    display_name: str           # human label
    taxonomy: str = "us-gaap"
    unit: str = USD


# ═══════════════════════════════════════════════════════════════════════════
#  BALANCE SHEET: ASSETS
# ═══════════════════════════════════════════════════════════════════════════

TOTAL_ASSETS: list[ConceptEntry] = [
    ConceptEntry("Assets", "Total Assets"),
]

CASH_AND_DUE_FROM_BANKS: list[ConceptEntry] = [
    ConceptEntry("CashAndDueFromBanks", "Cash and Due from Banks"),
    ConceptEntry("CashAndCashEquivalentsAtCarryingValue", "Cash and Cash Equivalents"),
]

INTEREST_BEARING_DEPOSITS_IN_BANKS: list[ConceptEntry] = [
    ConceptEntry("InterestBearingDepositsInBanks", "Interest-Bearing Deposits in Banks"),
    ConceptEntry("InterestBearingDepositsInBanksAndOtherFinancialInstitutions",
                 "Interest-Bearing Deposits in Banks & Other FIs"),
]

AFS_SECURITIES: list[ConceptEntry] = [
    ConceptEntry("AvailableForSaleSecuritiesDebtSecurities", "AFS Debt Securities"),
    ConceptEntry("AvailableForSaleSecurities", "AFS Securities"),
    ConceptEntry("AvailableForSaleSecuritiesDebt", "AFS Securities (debt, legacy)"),
]

HTM_SECURITIES: list[ConceptEntry] = [
    ConceptEntry("HeldToMaturitySecurities", "HTM Securities"),
    ConceptEntry("HeldToMaturitySecuritiesAmortizedCostAfterAllowanceForCreditLoss",
                 "HTM Securities (amortized cost, net of ACL)"),
]

LOANS: list[ConceptEntry] = [
    ConceptEntry("LoansAndLeasesReceivableNetReportedAmount", "Loans and Leases, Net"),
    ConceptEntry("FinancingReceivableExcludingAccruedInterestAfterAllowanceForCreditLoss",
                 "Financing Receivable, Net of ACL"),
    ConceptEntry("NotesReceivableNet", "Notes Receivable, Net"),
]

ALLOWANCE_FOR_CREDIT_LOSSES: list[ConceptEntry] = [
    ConceptEntry("AllowanceForLoanAndLeaseLosses", "Allowance for Loan & Lease Losses"),
    ConceptEntry("FinancingReceivableAllowanceForCreditLosses",
                 "Financing Receivable ACL"),
    ConceptEntry("LoansAndLeasesReceivableAllowance", "Loans & Leases Allowance"),
]

PREMISES_AND_EQUIPMENT: list[ConceptEntry] = [
    ConceptEntry("PremisesAndEquipmentNet", "Premises and Equipment, Net"),
    ConceptEntry("PropertyPlantAndEquipmentNet", "PP&E, Net"),
]

# ═══════════════════════════════════════════════════════════════════════════
#  BALANCE SHEET: LIABILITIES & EQUITY
# ═══════════════════════════════════════════════════════════════════════════

TOTAL_LIABILITIES: list[ConceptEntry] = [
    ConceptEntry("Liabilities", "Total Liabilities"),
]

DEPOSITS: list[ConceptEntry] = [
    ConceptEntry("Deposits", "Total Deposits"),
    ConceptEntry("DepositsDomestic", "Domestic Deposits"),
]

SHORT_TERM_BORROWINGS: list[ConceptEntry] = [
    ConceptEntry("ShortTermBorrowings", "Short-Term Borrowings"),
    ConceptEntry("SecuritiesSoldUnderAgreementsToRepurchase", "Repurchase Agreements"),
]

LONG_TERM_DEBT: list[ConceptEntry] = [
    ConceptEntry("LongTermDebt", "Long-Term Debt"),
    ConceptEntry("LongTermDebtNoncurrent", "Long-Term Debt (noncurrent)"),
    ConceptEntry("SubordinatedDebt", "Subordinated Debt"),
]

STOCKHOLDERS_EQUITY: list[ConceptEntry] = [
    ConceptEntry("StockholdersEquity", "Stockholders' Equity"),
    ConceptEntry("StockholdersEquityIncludingPortionAttributableToNoncontrollingInterest",
                 "Total Equity (incl. NCI)"),
]

GOODWILL: list[ConceptEntry] = [
    ConceptEntry("Goodwill", "Goodwill"),
]

INTANGIBLE_ASSETS: list[ConceptEntry] = [
    ConceptEntry("IntangibleAssetsNetExcludingGoodwill", "Intangible Assets (excl. goodwill)"),
]

PREFERRED_STOCK: list[ConceptEntry] = [
    ConceptEntry("PreferredStockValue", "Preferred Stock"),
    ConceptEntry("PreferredStockValueOutstanding", "Preferred Stock Outstanding"),
]

# ═══════════════════════════════════════════════════════════════════════════
#  INCOME STATEMENT
# ═══════════════════════════════════════════════════════════════════════════

INTEREST_INCOME: list[ConceptEntry] = [
    ConceptEntry("InterestAndDividendIncomeOperating", "Interest & Dividend Income"),
    ConceptEntry("InterestIncome", "Interest Income"),
    ConceptEntry("InterestIncomeOperating", "Interest Income (Operating)"),
]

INTEREST_EXPENSE: list[ConceptEntry] = [
    ConceptEntry("InterestExpense", "Interest Expense"),
    ConceptEntry("InterestExpenseDeposits", "Interest Expense on Deposits"),
]

NET_INTEREST_INCOME: list[ConceptEntry] = [
    ConceptEntry("InterestIncomeExpenseNet", "Net Interest Income"),
    ConceptEntry("NetInterestIncome", "Net Interest Income (alt)"),
]

NONINTEREST_INCOME: list[ConceptEntry] = [
    ConceptEntry("NoninterestIncome", "Noninterest Income"),
]

NONINTEREST_EXPENSE: list[ConceptEntry] = [
    ConceptEntry("NoninterestExpense", "Noninterest Expense"),
    ConceptEntry("OtherCostAndExpenseOperating", "Other Operating Costs"),
]

PROVISION_FOR_CREDIT_LOSSES: list[ConceptEntry] = [
    ConceptEntry("ProvisionForLoanAndLeaseLosses", "Provision for Loan & Lease Losses"),
    ConceptEntry("ProvisionForLoanLeaseAndOtherLosses", "Provision for Loan, Lease & Other"),
    ConceptEntry("ProvisionForCreditLosses", "Provision for Credit Losses"),
]

PRE_TAX_INCOME: list[ConceptEntry] = [
    ConceptEntry("IncomeLossFromContinuingOperationsBeforeIncomeTaxes"
                 "MinorityInterestAndIncomeLossFromEquityMethodInvestments",
                 "Pre-Tax Income"),
    ConceptEntry("IncomeLossFromContinuingOperationsBeforeIncomeTaxes", "Pre-Tax Income (alt)"),
    ConceptEntry("IncomeLossFromContinuingOperationsBeforeIncomeTaxes"
                 "ExtraordinaryItemsNoncontrollingInterest",
                 "Pre-Tax Income (incl. NCI)"),
]

NET_INCOME: list[ConceptEntry] = [
    ConceptEntry("NetIncomeLoss", "Net Income (Loss)"),
    ConceptEntry("ProfitLoss", "Profit (Loss)"),
    ConceptEntry("NetIncomeLossAvailableToCommonStockholdersBasic",
                 "Net Income Available to Common"),
]

# ═══════════════════════════════════════════════════════════════════════════
#  CASH FLOW
# ═══════════════════════════════════════════════════════════════════════════

OPERATING_CASH_FLOW: list[ConceptEntry] = [
    ConceptEntry("NetCashProvidedByUsedInOperatingActivities", "Operating Cash Flow"),
    ConceptEntry("CashFlowsFromUsedInOperatingActivities", "Operating Cash Flow (alt)"),
]

# ═══════════════════════════════════════════════════════════════════════════
#  CAPITAL / PER-SHARE
# ═══════════════════════════════════════════════════════════════════════════

SHARES_OUTSTANDING: list[ConceptEntry] = [
    ConceptEntry("CommonStockSharesOutstanding", "Common Shares Outstanding", unit=SHARES),
    ConceptEntry("EntityCommonStockSharesOutstanding", "Entity Common Shares Outstanding",
                 taxonomy="dei", unit=SHARES),
    ConceptEntry("WeightedAverageNumberOfSharesOutstandingBasic", "Weighted Avg Shares (basic)",
                 unit=SHARES),
]

EPS: list[ConceptEntry] = [
    ConceptEntry("EarningsPerShareBasic", "EPS (basic)", unit=USD_PER_SHARE),
    ConceptEntry("EarningsPerShareDiluted", "EPS (diluted)", unit=USD_PER_SHARE),
]

DIVIDENDS_PER_SHARE: list[ConceptEntry] = [
    ConceptEntry("CommonStockDividendsPerShareDeclared", "Dividends per Share (declared)",
                 unit=USD_PER_SHARE),
    ConceptEntry("CommonStockDividendsPerShareCashPaid", "Dividends per Share (paid)",
                 unit=USD_PER_SHARE),
]

# ═══════════════════════════════════════════════════════════════════════════
#  MASTER MAP: keys are EdgarMetrics field names
# ═══════════════════════════════════════════════════════════════════════════

BANK_CONCEPTS: dict[str, list[ConceptEntry]] = {
    "total_assets": TOTAL_ASSETS,
    "cash_and_due_from_banks": CASH_AND_DUE_FROM_BANKS,
    "interest_bearing_deposits_in_banks": INTEREST_BEARING_DEPOSITS_IN_BANKS,
    "afs_securities": AFS_SECURITIES,
    "htm_securities": HTM_SECURITIES,
    "loans": LOANS,
    "allowance_for_credit_losses": ALLOWANCE_FOR_CREDIT_LOSSES,
    "premises_and_equipment": PREMISES_AND_EQUIPMENT,
    "total_liabilities": TOTAL_LIABILITIES,
    "deposits": DEPOSITS,
    "short_term_borrowings": SHORT_TERM_BORROWINGS,
    "long_term_debt": LONG_TERM_DEBT,
    "total_equity": STOCKHOLDERS_EQUITY,
    "goodwill": GOODWILL,
    "intangible_assets": INTANGIBLE_ASSETS,
    "preferred_stock": PREFERRED_STOCK,
    "interest_income": INTEREST_INCOME,
    "interest_expense": INTEREST_EXPENSE,
    "net_interest_income": NET_INTEREST_INCOME,
    "noninterest_income": NONINTEREST_INCOME,
    "noninterest_expense": NONINTEREST_EXPENSE,
    "provision_for_credit_losses": PROVISION_FOR_CREDIT_LOSSES,
    "pre_tax_income": PRE_TAX_INCOME,
    "net_income": NET_INCOME,
    "operating_cash_flow": OPERATING_CASH_FLOW,
    "shares_outstanding": SHARES_OUTSTANDING,
    "eps": EPS,
    "dividends_per_share": DIVIDENDS_PER_SHARE,
}

# Balance-sheet fields averaged over current + prior period
AVERAGED_FIELDS: dict[str, str] = {
    "total_assets": "total_assets_prior",
    "loans": "loans_prior",
}

# Fields reported over a period (start → end) rather than at a point in
# time; these resolve to a full-year or trailing-twelve-month figure
DURATION_FIELDS: frozenset[str] = frozenset({
    "interest_income",
    "interest_expense",
    "net_interest_income",
    "noninterest_income",
    "noninterest_expense",
    "provision_for_credit_losses",
    "pre_tax_income",
    "net_income",
    "operating_cash_flow",
    "eps",
    "dividends_per_share",
})
