"""
Jomla - Internationalization
=============================
Arabic (default, right-to-left) and French (left-to-right) UI strings.

Every UI string is addressed by a member of TKey, and TRANSLATIONS holds
one complete mapping per language. Missing keys are a bug (see tests),
not something to paper over with a fallback at runtime.

Content rows (categories, products, wilayas...) carry their own
``name_ar`` / ``name_fr`` columns; only those fall back, via localized().
"""

import enum
from typing import Dict, Optional

from config.settings import DEFAULT_LANGUAGE, LANGUAGE_COOKIE


class Language(str, enum.Enum):
    AR = "ar"
    FR = "fr"


def parse_language(value: Optional[str]) -> Language:
    """Unknown or missing codes resolve to the default language."""
    try:
        return Language(value)
    except ValueError:
        return Language(DEFAULT_LANGUAGE)


def direction(lang: Language) -> str:
    return "rtl" if lang == Language.AR else "ltr"


def get_language(request) -> Language:
    """Language preference stored in the client cookie."""
    return parse_language(request.cookies.get(LANGUAGE_COOKIE))


class TKey(str, enum.Enum):
    # Navigation
    NAV_HOME = "nav.home"
    NAV_PRODUCTS = "nav.products"
    NAV_MY_ORDERS = "nav.my_orders"
    NAV_ACCOUNT = "nav.account"
    NAV_CART = "nav.cart"
    NAV_ADMIN = "nav.admin"
    NAV_LOGIN = "nav.login"
    NAV_SIGNUP = "nav.signup"
    NAV_LOGOUT = "nav.logout"

    # Product
    PRODUCT_CATEGORIES = "product.categories"
    PRODUCT_ALL = "product.all_products"
    PRODUCT_IN_STOCK = "product.in_stock"
    PRODUCT_OUT_OF_STOCK = "product.out_of_stock"
    PRODUCT_ADD_TO_CART = "product.add_to_cart"
    PRODUCT_PRICE = "product.price"
    PRODUCT_QUANTITY = "product.quantity"
    PRODUCT_NOT_FOUND = "product.not_found"
    PRODUCT_SELECT_VARIANT = "product.select_variant"

    # Messages
    MSG_NO_PRODUCTS = "message.no_products"
    MSG_LOADING = "message.loading"
    MSG_ERROR = "message.error"
    MSG_SUCCESS = "message.success"
    MSG_PAGE_NOT_FOUND = "message.page_not_found"
    MSG_UNAUTHORIZED = "message.unauthorized"

    # Features
    FEATURE_WHOLESALE = "feature.wholesale_prices"
    FEATURE_WHOLESALE_DESC = "feature.wholesale_prices_desc"
    FEATURE_DELIVERY = "feature.delivery"
    FEATURE_DELIVERY_DESC = "feature.delivery_desc"
    FEATURE_QUALITY = "feature.quality"
    FEATURE_QUALITY_DESC = "feature.quality_desc"

    # CTA
    CTA_START_SHOPPING = "cta.start_shopping"
    CTA_DISCOVER = "cta.discover_collection"
    CTA_VIEW_PRODUCTS = "cta.view_products"

    # Cart
    CART_TITLE = "cart.title"
    CART_EMPTY = "cart.empty"
    CART_CHECKOUT = "cart.checkout"
    CART_CONTINUE = "cart.continue_shopping"
    CART_REMOVE = "cart.remove"
    CART_TOTAL = "cart.total"
    CART_SUBTOTAL = "cart.subtotal"
    CART_ADDED = "cart.added"
    CART_UPDATED = "cart.updated"
    CART_REMOVED = "cart.removed"
    CART_INSUFFICIENT_STOCK = "cart.insufficient_stock"
    CART_ERROR = "cart.error"

    # Category
    CATEGORY_PRODUCTS = "category.products"
    CATEGORY_NO_PRODUCTS = "category.no_products"
    CATEGORY_NOT_FOUND = "category.not_found"

    # Checkout
    CHECKOUT_TITLE = "checkout.title"
    CHECKOUT_CUSTOMER_INFO = "checkout.customer_info"
    CHECKOUT_DELIVERY_INFO = "checkout.delivery_info"
    CHECKOUT_FULL_NAME = "checkout.full_name"
    CHECKOUT_PHONE = "checkout.phone"
    CHECKOUT_WILAYA = "checkout.wilaya"
    CHECKOUT_SELECT_WILAYA = "checkout.select_wilaya"
    CHECKOUT_COMMUNE = "checkout.commune"
    CHECKOUT_ADDRESS = "checkout.address"
    CHECKOUT_NOTES = "checkout.notes"
    CHECKOUT_DELIVERY_PRICE = "checkout.delivery_price"
    CHECKOUT_SUBMIT = "checkout.submit"
    CHECKOUT_REQUIRED_FIELDS = "checkout.required_fields"
    CHECKOUT_INVALID_PHONE = "checkout.invalid_phone"
    CHECKOUT_SUCCESS = "checkout.success"
    CHECKOUT_ERROR = "checkout.error"

    # Orders
    ORDERS_TITLE = "orders.title"
    ORDERS_EMPTY = "orders.empty"
    ORDER_NUMBER = "order.number"
    ORDER_CONFIRMATION = "order.confirmation"
    ORDER_THANKS = "order.thanks"
    ORDER_STATUS_PENDING = "order.status.pending"
    ORDER_STATUS_CONFIRMED = "order.status.confirmed"
    ORDER_STATUS_DELIVERED = "order.status.delivered"
    ORDER_STATUS_CANCELED = "order.status.canceled"

    # Auth
    AUTH_LOGIN = "auth.login"
    AUTH_SIGNUP = "auth.signup"
    AUTH_EMAIL = "auth.email"
    AUTH_PASSWORD = "auth.password"
    AUTH_LOGIN_SUCCESS = "auth.login_success"
    AUTH_SIGNUP_SUCCESS = "auth.signup_success"
    AUTH_INVALID_CREDENTIALS = "auth.invalid_credentials"

    # Admin
    ADMIN_DASHBOARD = "admin.dashboard"
    ADMIN_CATEGORIES = "admin.categories"
    ADMIN_PRODUCTS = "admin.products"
    ADMIN_ORDERS = "admin.orders"
    ADMIN_SETTINGS = "admin.settings"
    ADMIN_SAVED = "admin.saved"
    ADMIN_DELETED = "admin.deleted"
    ADMIN_STATUS_UPDATED = "admin.status_updated"
    ADMIN_CONFIRM_DELETE = "admin.confirm_delete"
    ADMIN_NAME_AR_REQUIRED = "admin.name_ar_required"
    ADMIN_SAVE_FAILED = "admin.save_failed"


TRANSLATIONS: Dict[Language, Dict[TKey, str]] = {
    Language.AR: {
        TKey.NAV_HOME: "الرئيسية",
        TKey.NAV_PRODUCTS: "المنتجات",
        TKey.NAV_MY_ORDERS: "طلباتي",
        TKey.NAV_ACCOUNT: "حسابي",
        TKey.NAV_CART: "السلة",
        TKey.NAV_ADMIN: "لوحة التحكم",
        TKey.NAV_LOGIN: "تسجيل الدخول",
        TKey.NAV_SIGNUP: "إنشاء حساب",
        TKey.NAV_LOGOUT: "تسجيل الخروج",

        TKey.PRODUCT_CATEGORIES: "الفئات",
        TKey.PRODUCT_ALL: "جميع المنتجات",
        TKey.PRODUCT_IN_STOCK: "متوفر",
        TKey.PRODUCT_OUT_OF_STOCK: "غير متوفر",
        TKey.PRODUCT_ADD_TO_CART: "أضف للسلة",
        TKey.PRODUCT_PRICE: "السعر",
        TKey.PRODUCT_QUANTITY: "الكمية",
        TKey.PRODUCT_NOT_FOUND: "المنتج غير موجود",
        TKey.PRODUCT_SELECT_VARIANT: "الرجاء اختيار نوع المنتج",

        TKey.MSG_NO_PRODUCTS: "لا توجد منتجات في هذه الفئة",
        TKey.MSG_LOADING: "جاري التحميل...",
        TKey.MSG_ERROR: "حدث خطأ",
        TKey.MSG_SUCCESS: "تمت العملية بنجاح",
        TKey.MSG_PAGE_NOT_FOUND: "الصفحة غير موجودة",
        TKey.MSG_UNAUTHORIZED: "غير مصرح لك بالدخول",

        TKey.FEATURE_WHOLESALE: "أسعار الجملة",
        TKey.FEATURE_WHOLESALE_DESC: "أفضل الأسعار للشراء بالكميات الكبيرة",
        TKey.FEATURE_DELIVERY: "توصيل لجميع الولايات",
        TKey.FEATURE_DELIVERY_DESC: "نوصل إلى كل ولايات الجزائر ال 58",
        TKey.FEATURE_QUALITY: "جودة مضمونة",
        TKey.FEATURE_QUALITY_DESC: "منتجات عالية الجودة ومضمونة",

        TKey.CTA_START_SHOPPING: "ابدأ التسوق الآن",
        TKey.CTA_DISCOVER: "اكتشف مجموعتنا الواسعة من إكسسوارات الهواتف",
        TKey.CTA_VIEW_PRODUCTS: "عرض المنتجات",

        TKey.CART_TITLE: "سلة التسوق",
        TKey.CART_EMPTY: "السلة فارغة",
        TKey.CART_CHECKOUT: "إتمام الطلب",
        TKey.CART_CONTINUE: "متابعة التسوق",
        TKey.CART_REMOVE: "حذف",
        TKey.CART_TOTAL: "المجموع",
        TKey.CART_SUBTOTAL: "المجموع الفرعي",
        TKey.CART_ADDED: "تمت إضافة المنتج إلى السلة",
        TKey.CART_UPDATED: "تم تحديث الكمية",
        TKey.CART_REMOVED: "تم حذف المنتج من السلة",
        TKey.CART_INSUFFICIENT_STOCK: "الكمية المطلوبة غير متوفرة",
        TKey.CART_ERROR: "حدث خطأ أثناء تحديث السلة",

        TKey.CATEGORY_PRODUCTS: "المنتجات",
        TKey.CATEGORY_NO_PRODUCTS: "لا توجد منتجات في هذه الفئة",
        TKey.CATEGORY_NOT_FOUND: "الفئة غير موجودة",

        TKey.CHECKOUT_TITLE: "إتمام الطلب",
        TKey.CHECKOUT_CUSTOMER_INFO: "معلومات العميل",
        TKey.CHECKOUT_DELIVERY_INFO: "معلومات التوصيل",
        TKey.CHECKOUT_FULL_NAME: "الاسم الكامل",
        TKey.CHECKOUT_PHONE: "رقم الهاتف",
        TKey.CHECKOUT_WILAYA: "الولاية",
        TKey.CHECKOUT_SELECT_WILAYA: "اختر الولاية",
        TKey.CHECKOUT_COMMUNE: "البلدية",
        TKey.CHECKOUT_ADDRESS: "العنوان الكامل",
        TKey.CHECKOUT_NOTES: "ملاحظات (اختياري)",
        TKey.CHECKOUT_DELIVERY_PRICE: "سعر التوصيل",
        TKey.CHECKOUT_SUBMIT: "تأكيد الطلب",
        TKey.CHECKOUT_REQUIRED_FIELDS: "الرجاء ملء جميع الحقول المطلوبة",
        TKey.CHECKOUT_INVALID_PHONE: "رقم الهاتف طويل جداً",
        TKey.CHECKOUT_SUCCESS: "تم إنشاء الطلب بنجاح",
        TKey.CHECKOUT_ERROR: "حدث خطأ أثناء إنشاء الطلب",

        TKey.ORDERS_TITLE: "طلباتي",
        TKey.ORDERS_EMPTY: "لا توجد طلبات بعد",
        TKey.ORDER_NUMBER: "رقم الطلب",
        TKey.ORDER_CONFIRMATION: "تأكيد الطلب",
        TKey.ORDER_THANKS: "شكراً لطلبك! سنتصل بك قريباً لتأكيد الطلب",
        TKey.ORDER_STATUS_PENDING: "قيد المعالجة",
        TKey.ORDER_STATUS_CONFIRMED: "مؤكد",
        TKey.ORDER_STATUS_DELIVERED: "تم التوصيل",
        TKey.ORDER_STATUS_CANCELED: "ملغى",

        TKey.AUTH_LOGIN: "تسجيل الدخول",
        TKey.AUTH_SIGNUP: "إنشاء حساب",
        TKey.AUTH_EMAIL: "البريد الإلكتروني",
        TKey.AUTH_PASSWORD: "كلمة المرور",
        TKey.AUTH_LOGIN_SUCCESS: "تم تسجيل الدخول بنجاح",
        TKey.AUTH_SIGNUP_SUCCESS: "تم إنشاء الحساب بنجاح",
        TKey.AUTH_INVALID_CREDENTIALS: "البريد الإلكتروني أو كلمة المرور غير صحيحة",

        TKey.ADMIN_DASHBOARD: "لوحة التحكم",
        TKey.ADMIN_CATEGORIES: "الفئات",
        TKey.ADMIN_PRODUCTS: "المنتجات",
        TKey.ADMIN_ORDERS: "الطلبات",
        TKey.ADMIN_SETTINGS: "الإعدادات",
        TKey.ADMIN_SAVED: "تم الحفظ بنجاح",
        TKey.ADMIN_DELETED: "تم الحذف بنجاح",
        TKey.ADMIN_STATUS_UPDATED: "تم تحديث الحالة",
        TKey.ADMIN_CONFIRM_DELETE: "هل أنت متأكد من الحذف؟",
        TKey.ADMIN_NAME_AR_REQUIRED: "الاسم بالعربية مطلوب",
        TKey.ADMIN_SAVE_FAILED: "فشل الحفظ",
    },
    Language.FR: {
        TKey.NAV_HOME: "Accueil",
        TKey.NAV_PRODUCTS: "Produits",
        TKey.NAV_MY_ORDERS: "Mes Commandes",
        TKey.NAV_ACCOUNT: "Mon Compte",
        TKey.NAV_CART: "Panier",
        TKey.NAV_ADMIN: "Tableau de bord",
        TKey.NAV_LOGIN: "Connexion",
        TKey.NAV_SIGNUP: "Créer un compte",
        TKey.NAV_LOGOUT: "Déconnexion",

        TKey.PRODUCT_CATEGORIES: "Catégories",
        TKey.PRODUCT_ALL: "Tous les produits",
        TKey.PRODUCT_IN_STOCK: "En stock",
        TKey.PRODUCT_OUT_OF_STOCK: "Rupture de stock",
        TKey.PRODUCT_ADD_TO_CART: "Ajouter au panier",
        TKey.PRODUCT_PRICE: "Prix",
        TKey.PRODUCT_QUANTITY: "Quantité",
        TKey.PRODUCT_NOT_FOUND: "Produit introuvable",
        TKey.PRODUCT_SELECT_VARIANT: "Veuillez choisir une variante",

        TKey.MSG_NO_PRODUCTS: "Aucun produit dans cette catégorie",
        TKey.MSG_LOADING: "Chargement...",
        TKey.MSG_ERROR: "Une erreur est survenue",
        TKey.MSG_SUCCESS: "Opération réussie",
        TKey.MSG_PAGE_NOT_FOUND: "Page introuvable",
        TKey.MSG_UNAUTHORIZED: "Accès non autorisé",

        TKey.FEATURE_WHOLESALE: "Prix de gros",
        TKey.FEATURE_WHOLESALE_DESC: "Meilleurs prix pour achats en grande quantité",
        TKey.FEATURE_DELIVERY: "Livraison dans toutes les wilayas",
        TKey.FEATURE_DELIVERY_DESC: "Nous livrons dans les 58 wilayas d'Algérie",
        TKey.FEATURE_QUALITY: "Qualité garantie",
        TKey.FEATURE_QUALITY_DESC: "Produits de haute qualité et garantis",

        TKey.CTA_START_SHOPPING: "Commencez vos achats maintenant",
        TKey.CTA_DISCOVER: "Découvrez notre large gamme d'accessoires pour téléphones",
        TKey.CTA_VIEW_PRODUCTS: "Voir les produits",

        TKey.CART_TITLE: "Panier",
        TKey.CART_EMPTY: "Panier vide",
        TKey.CART_CHECKOUT: "Passer la commande",
        TKey.CART_CONTINUE: "Continuer les achats",
        TKey.CART_REMOVE: "Supprimer",
        TKey.CART_TOTAL: "Total",
        TKey.CART_SUBTOTAL: "Sous-total",
        TKey.CART_ADDED: "Produit ajouté au panier",
        TKey.CART_UPDATED: "Quantité mise à jour",
        TKey.CART_REMOVED: "Produit retiré du panier",
        TKey.CART_INSUFFICIENT_STOCK: "Quantité demandée non disponible",
        TKey.CART_ERROR: "Erreur lors de la mise à jour du panier",

        TKey.CATEGORY_PRODUCTS: "Produits",
        TKey.CATEGORY_NO_PRODUCTS: "Aucun produit dans cette catégorie",
        TKey.CATEGORY_NOT_FOUND: "Catégorie introuvable",

        TKey.CHECKOUT_TITLE: "Finaliser la commande",
        TKey.CHECKOUT_CUSTOMER_INFO: "Informations client",
        TKey.CHECKOUT_DELIVERY_INFO: "Informations de livraison",
        TKey.CHECKOUT_FULL_NAME: "Nom complet",
        TKey.CHECKOUT_PHONE: "Téléphone",
        TKey.CHECKOUT_WILAYA: "Wilaya",
        TKey.CHECKOUT_SELECT_WILAYA: "Choisissez la wilaya",
        TKey.CHECKOUT_COMMUNE: "Commune",
        TKey.CHECKOUT_ADDRESS: "Adresse complète",
        TKey.CHECKOUT_NOTES: "Remarques (optionnel)",
        TKey.CHECKOUT_DELIVERY_PRICE: "Frais de livraison",
        TKey.CHECKOUT_SUBMIT: "Confirmer la commande",
        TKey.CHECKOUT_REQUIRED_FIELDS: "Veuillez remplir tous les champs obligatoires",
        TKey.CHECKOUT_INVALID_PHONE: "Numéro de téléphone trop long",
        TKey.CHECKOUT_SUCCESS: "Commande créée avec succès",
        TKey.CHECKOUT_ERROR: "Erreur lors de la création de la commande",

        TKey.ORDERS_TITLE: "Mes Commandes",
        TKey.ORDERS_EMPTY: "Aucune commande pour le moment",
        TKey.ORDER_NUMBER: "N° de commande",
        TKey.ORDER_CONFIRMATION: "Confirmation de commande",
        TKey.ORDER_THANKS: "Merci pour votre commande ! Nous vous appellerons bientôt pour la confirmer",
        TKey.ORDER_STATUS_PENDING: "En traitement",
        TKey.ORDER_STATUS_CONFIRMED: "Confirmée",
        TKey.ORDER_STATUS_DELIVERED: "Livrée",
        TKey.ORDER_STATUS_CANCELED: "Annulée",

        TKey.AUTH_LOGIN: "Connexion",
        TKey.AUTH_SIGNUP: "Créer un compte",
        TKey.AUTH_EMAIL: "E-mail",
        TKey.AUTH_PASSWORD: "Mot de passe",
        TKey.AUTH_LOGIN_SUCCESS: "Connexion réussie",
        TKey.AUTH_SIGNUP_SUCCESS: "Compte créé avec succès",
        TKey.AUTH_INVALID_CREDENTIALS: "E-mail ou mot de passe incorrect",

        TKey.ADMIN_DASHBOARD: "Tableau de bord",
        TKey.ADMIN_CATEGORIES: "Catégories",
        TKey.ADMIN_PRODUCTS: "Produits",
        TKey.ADMIN_ORDERS: "Commandes",
        TKey.ADMIN_SETTINGS: "Paramètres",
        TKey.ADMIN_SAVED: "Enregistré avec succès",
        TKey.ADMIN_DELETED: "Supprimé avec succès",
        TKey.ADMIN_STATUS_UPDATED: "Statut mis à jour",
        TKey.ADMIN_CONFIRM_DELETE: "Confirmer la suppression ?",
        TKey.ADMIN_NAME_AR_REQUIRED: "Le nom en arabe est obligatoire",
        TKey.ADMIN_SAVE_FAILED: "Échec de l'enregistrement",
    },
}


def t(key: TKey, lang: Language = Language.AR) -> str:
    return TRANSLATIONS[lang][key]


def localized(row, field: str, lang: Language) -> str:
    """
    Localized column value for a content row: ``<field>_fr`` for French
    when filled in, otherwise the required ``<field>_ar``.
    """
    if row is None:
        return ""
    if lang == Language.FR:
        value = getattr(row, f"{field}_fr", None)
        if value:
            return value
    return getattr(row, f"{field}_ar", "") or ""
