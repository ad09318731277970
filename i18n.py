"""Translation lookup and the per-session language preference.

``translate`` is pure: it reads the static tables below and never raises.
The selected language lives in a signed cookie; reading and writing it is
kept to ``get_locale``/``set_locale`` so the HTTP layer owns the side effect.
"""

import logging
from dataclasses import dataclass
from typing import Mapping, Optional, Union

from itsdangerous import BadSignature, URLSafeSerializer

from config import get_settings
from models import DEFAULT_LOCALE, Locale

logger = logging.getLogger(__name__)

LOCALE_COOKIE = "spendwise_language"

TRANSLATIONS: dict[Locale, dict[str, str]] = {
    Locale.en: {
        # Navigation
        "dashboard": "Dashboard",
        "expenses": "Expenses",
        "categories": "Categories",
        "budget": "Budget",
        "profile": "Profile",
        "logout": "Logout",
        # Dashboard
        "totalSpent": "Total Spent",
        "remainingBudget": "Remaining Budget",
        "topCategory": "Top Category",
        "recentExpenses": "Recent Expenses",
        "monthlyOverview": "Monthly Overview",
        "categoryBreakdown": "Category Breakdown",
        # Expenses
        "addExpense": "Add Expense",
        "amount": "Amount",
        "category": "Category",
        "date": "Date",
        "notes": "Notes",
        "paymentMode": "Payment Mode",
        "location": "Location",
        "save": "Save",
        "cancel": "Cancel",
        "edit": "Edit",
        "delete": "Delete",
        # Payment modes
        "cash": "Cash",
        "upi": "UPI",
        "credit": "Credit",
        "other": "Other",
        # Budget
        "setBudget": "Set Budget",
        "monthly": "Monthly",
        "weekly": "Weekly",
        "budgetAmount": "Budget Amount",
        "spent": "Spent",
        "remaining": "Remaining",
        "budgetExceeded": "Budget exceeded!",
        "budgetCritical": "80% of budget used",
        "budgetCaution": "50% of budget used",
        "budgetOnTrack": "Budget on track",
        "noActiveBudget": "No active budget",
        # Auth
        "login": "Login",
        "signup": "Sign Up",
        "email": "Email",
        "password": "Password",
        "name": "Name",
        "phone": "Phone Number",
        "village": "Village/Town",
        "monthlyIncome": "Monthly Income",
        # Common
        "search": "Search",
        "filter": "Filter",
        "sort": "Sort",
        "viewAll": "View All",
        "noData": "No data available",
    },
    Locale.te: {
        "dashboard": "డాష్‌బోర్డ్",
        "expenses": "ఖర్చులు",
        "categories": "వర్గాలు",
        "budget": "బడ్జెట్",
        "profile": "ప్రొఫైల్",
        "logout": "లాగ్అవుట్",
        "totalSpent": "మొత్తం ఖర్చు",
        "remainingBudget": "మిగిలిన బడ్జెట్",
        "topCategory": "టాప్ వర్గం",
        "recentExpenses": "ఇటీవల ఖర్చులు",
        "monthlyOverview": "నెలవారీ సమీక్ష",
        "categoryBreakdown": "వర్గం వారీగా",
        "addExpense": "ఖర్చు జోడించు",
        "amount": "మొత్తం",
        "category": "వర్గం",
        "date": "తేదీ",
        "notes": "గమనికలు",
        "paymentMode": "చెల్లింపు విధానం",
        "location": "స్థలం",
        "save": "సేవ్ చేయి",
        "cancel": "రద్దు చేయి",
        "edit": "సవరించు",
        "delete": "తొలగించు",
        "cash": "నగదు",
        "upi": "UPI",
        "credit": "క్రెడిట్",
        "other": "ఇతర",
        "setBudget": "బడ్జెట్ సెట్ చేయండి",
        "monthly": "నెలవారీ",
        "weekly": "వారంవారీ",
        "budgetAmount": "బడ్జెట్ మొత్తం",
        "spent": "ఖర్చు చేసారు",
        "remaining": "మిగిలినది",
        "budgetExceeded": "బడ్జెట్ మించిపోయింది!",
        "budgetCritical": "బడ్జెట్‌లో 80% ఉపయోగించారు",
        "budgetCaution": "బడ్జెట్‌లో 50% ఉపయోగించారు",
        "budgetOnTrack": "బడ్జెట్ సరిగ్గా ఉంది",
        "noActiveBudget": "క్రియాశీల బడ్జెట్ లేదు",
        "login": "లాగిన్",
        "signup": "సైన్ అప్",
        "email": "ఇమెయిల్",
        "password": "పాస్‌వర్డ్",
        "name": "పేరు",
        "phone": "ఫోన్ నంబర్",
        "village": "గ్రామం/పట్టణం",
        "monthlyIncome": "నెలవారీ ఆదాయం",
        "search": "వెతుకు",
        "filter": "ఫిల్టర్",
        "sort": "క్రమబద్ధీకరించు",
        "viewAll": "అన్నీ చూడండి",
        "noData": "డేటా అందుబాటులో లేదు",
    },
    Locale.hi: {
        "dashboard": "डैशबोर्ड",
        "expenses": "खर्चे",
        "categories": "श्रेणियाँ",
        "budget": "बजट",
        "profile": "प्रोफ़ाइल",
        "logout": "लॉगआउट",
        "totalSpent": "कुल खर्च",
        "remainingBudget": "शेष बजट",
        "topCategory": "शीर्ष श्रेणी",
        "recentExpenses": "हाल के खर्चे",
        "monthlyOverview": "मासिक अवलोकन",
        "categoryBreakdown": "श्रेणी विवरण",
        "addExpense": "खर्च जोड़ें",
        "amount": "राशि",
        "category": "श्रेणी",
        "date": "तारीख",
        "notes": "टिप्पणियाँ",
        "paymentMode": "भुगतान मोड",
        "location": "स्थान",
        "save": "सेव करें",
        "cancel": "रद्द करें",
        "edit": "संपादित करें",
        "delete": "हटाएं",
        "cash": "नकद",
        "upi": "UPI",
        "credit": "क्रेडिट",
        "other": "अन्य",
        "setBudget": "बजट सेट करें",
        "monthly": "मासिक",
        "weekly": "साप्ताहिक",
        "budgetAmount": "बजट राशि",
        "spent": "खर्च किया",
        "remaining": "शेष",
        "budgetExceeded": "बजट पार हो गया!",
        "budgetCritical": "बजट का 80% उपयोग हो गया",
        "budgetCaution": "बजट का 50% उपयोग हो गया",
        "budgetOnTrack": "बजट सही दिशा में है",
        "noActiveBudget": "कोई सक्रिय बजट नहीं",
        "login": "लॉगिन",
        "signup": "साइन अप",
        "email": "ईमेल",
        "password": "पासवर्ड",
        "name": "नाम",
        "phone": "फोन नंबर",
        "village": "गाँव/शहर",
        "monthlyIncome": "मासिक आय",
        "search": "खोजें",
        "filter": "फ़िल्टर",
        "sort": "क्रमबद्ध करें",
        "viewAll": "सभी देखें",
        "noData": "कोई डेटा उपलब्ध नहीं",
    },
}


def default_locale() -> Locale:
    configured = get_settings().default_locale
    try:
        return Locale(configured)
    except ValueError:
        return DEFAULT_LOCALE


def coerce_locale(value: Union[Locale, str, None]) -> Locale:
    if isinstance(value, Locale):
        return value
    try:
        return Locale(value)
    except ValueError:
        return default_locale()


def translate(locale: Union[Locale, str, None], key: str) -> str:
    """Return ``key`` in the given language, or ``key`` itself if untranslated."""
    table = TRANSLATIONS.get(coerce_locale(locale), {})
    return table.get(key) or key


def table_for(locale: Union[Locale, str, None]) -> dict[str, str]:
    return dict(TRANSLATIONS[coerce_locale(locale)])


@dataclass(frozen=True)
class Translator:
    """A translation function bound to one session's language."""

    locale: Locale

    def __call__(self, key: str) -> str:
        return translate(self.locale, key)


def _serializer() -> URLSafeSerializer:
    return URLSafeSerializer(get_settings().csrf_secret, salt="locale-preference")


def get_locale(cookies: Mapping[str, str]) -> Locale:
    raw: Optional[str] = cookies.get(LOCALE_COOKIE)
    if not raw:
        return default_locale()
    try:
        value = _serializer().loads(raw)
    except BadSignature:
        logger.info("locale_cookie: rejected tampered value")
        return default_locale()
    return coerce_locale(value)


def set_locale(response, locale: Locale) -> None:
    settings = get_settings()
    response.set_cookie(
        LOCALE_COOKIE,
        _serializer().dumps(locale.value),
        max_age=settings.cookie_max_age_days * 24 * 3600,
        httponly=True,
        samesite="lax",
    )
