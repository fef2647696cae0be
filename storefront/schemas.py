from datetime import datetime
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field

from .models import BannerStatus, Role


class ORMModel(BaseModel):
    model_config = ConfigDict(from_attributes=True)


# --- AUTH / USER ---
class RegisterRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None
    name: Optional[str] = None


class LoginRequest(BaseModel):
    email: Optional[str] = None
    password: Optional[str] = None


class RefreshRequest(BaseModel):
    refresh_token: Optional[str] = None


class UserOut(ORMModel):
    id: int
    email: str
    name: str
    role: str
    created_at: Optional[datetime] = None


class AdminUserUpdate(BaseModel):
    role: Optional[Role] = None
    password: Optional[str] = None


# --- CATEGORY ---
class SubCategoryOut(ORMModel):
    id: int
    name: str
    slug: str
    category_id: int


class CategoryBrief(ORMModel):
    id: int
    name: str
    slug: str
    icon: Optional[str] = None


class CategoryOut(CategoryBrief):
    subcategories: List[SubCategoryOut] = []
    product_count: int = 0
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class CategoryCreate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None
    icon: Optional[str] = None


class CategoryUpdate(CategoryCreate):
    pass


class SubCategoryCreate(BaseModel):
    name: Optional[str] = None
    slug: Optional[str] = None


# --- PRODUCT ---
class ProductImageIn(BaseModel):
    url: str
    is_primary: bool = False


class ProductImageOut(ORMModel):
    id: int
    url: str
    is_primary: bool


class ProductBase(BaseModel):
    name: Optional[str] = None
    description: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    original_price: Optional[float] = Field(None, ge=0)
    category_id: Optional[int] = None
    sub_category_id: Optional[int] = None
    image: Optional[str] = None
    stock: Optional[int] = Field(None, ge=0)
    tags: Optional[List[str]] = None
    specs: Optional[Dict] = None
    is_best_seller: Optional[bool] = None
    is_new_arrival: Optional[bool] = None
    images: Optional[List[ProductImageIn]] = None


class ProductCreate(ProductBase):
    pass


class ProductUpdate(ProductBase):
    pass


class ProductOut(ORMModel):
    id: int
    name: str
    description: Optional[str] = None
    price: float
    original_price: Optional[float] = None
    category_id: int
    sub_category_id: Optional[int] = None
    image: Optional[str] = None
    stock: int
    rating: float
    review_count: int
    tags: List[str] = []
    specs: Dict = {}
    is_best_seller: bool = False
    is_new_arrival: bool = True
    category: Optional[CategoryBrief] = None
    sub_category: Optional[SubCategoryOut] = None
    primary_image: Optional[str] = None
    images: List[ProductImageOut] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class ProductQuery(BaseModel):
    """Catalog listing parameters; sort is one of price-asc, price-desc, rating, newest, best-seller."""

    category: Optional[int] = None
    sub_category: Optional[int] = None
    min_price: Optional[float] = None
    max_price: Optional[float] = None
    rating: Optional[float] = None
    search: Optional[str] = None
    sort: str = "newest"
    page: int = 1
    limit: int = 20


# --- CART ---
class CartItemAdd(BaseModel):
    product_id: Optional[int] = None
    quantity: int = 1


class CartItemUpdate(BaseModel):
    quantity: Optional[int] = None


class CartItemOut(ORMModel):
    id: int
    product_id: int
    quantity: int
    product: Optional[ProductOut] = None


# --- ORDER ---
class OrderItemIn(BaseModel):
    product_id: int
    quantity: int = 1


class CustomerInfo(BaseModel):
    name: Optional[str] = None
    email: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    city: Optional[str] = None
    district: Optional[str] = None
    ward: Optional[str] = None


class OrderCreate(BaseModel):
    items: List[OrderItemIn] = []
    customer_info: Optional[CustomerInfo] = None
    payment_method: Optional[str] = None
    note: Optional[str] = None


class OrderStatusUpdate(BaseModel):
    status: Optional[str] = None
    description: Optional[str] = None


class OrderItemOut(ORMModel):
    id: int
    product_id: int
    name: str
    price: float
    quantity: int
    image: Optional[str] = None
    subtotal: float


class OrderTimelineOut(ORMModel):
    status: str
    description: str
    created_at: datetime


class OrderOut(ORMModel):
    id: int
    order_code: str
    user_id: int
    subtotal: float
    shipping_fee: float
    total: float
    status: str
    payment_method: str
    payment_status: str
    customer_name: str
    customer_email: str
    customer_phone: str
    address: str
    city: str
    district: Optional[str] = None
    ward: Optional[str] = None
    note: Optional[str] = None
    items: List[OrderItemOut] = []
    timeline: List[OrderTimelineOut] = []
    created_at: datetime
    updated_at: Optional[datetime] = None


# --- REVIEW ---
class ReviewCreate(BaseModel):
    product_id: Optional[int] = None
    rating: Optional[float] = None
    comment: Optional[str] = None


class ReviewUpdate(BaseModel):
    rating: Optional[float] = None
    comment: Optional[str] = None


class ReviewOut(ORMModel):
    id: int
    product_id: int
    user_id: int
    user_name: Optional[str] = None
    rating: int
    comment: Optional[str] = None
    verified_purchase: bool
    created_at: datetime
    updated_at: Optional[datetime] = None

    @classmethod
    def from_review(cls, review) -> "ReviewOut":
        out = cls.model_validate(review)
        out.user_name = review.user.name if review.user else None
        return out


# --- BANNER ---
class BannerCreate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    url: Optional[str] = None
    status: BannerStatus = BannerStatus.ACTIVE
    priority: int = 0


class BannerUpdate(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    image: Optional[str] = None
    url: Optional[str] = None
    status: Optional[BannerStatus] = None
    priority: Optional[int] = None


class BannerOut(ORMModel):
    id: int
    title: str
    description: Optional[str] = None
    image: str
    url: Optional[str] = None
    status: str
    priority: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
