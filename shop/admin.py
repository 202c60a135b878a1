import logging

from django.contrib import admin, messages
from django.utils.html import format_html

from . import lifecycle, storage
from .forms import ProductForm
from .models import Category, Order, OrderItem, Product, Profile, UserRole

logger = logging.getLogger(__name__)


@admin.register(Category)
class CategoryAdmin(admin.ModelAdmin):
    list_display = ('name', 'slug', 'product_count')
    search_fields = ('name', 'slug')
    prepopulated_fields = {'slug': ('name',)}

    def product_count(self, obj):
        return obj.products.count()
    product_count.short_description = "Products"


@admin.register(Product)
class ProductAdmin(admin.ModelAdmin):
    form = ProductForm
    list_display = ('preview_image', 'name', 'category', 'price', 'sale_price', 'stock', 'featured', 'is_new', 'is_visible')
    list_filter = ('category', 'featured', 'is_new', 'is_visible')
    search_fields = ('name', 'description')
    readonly_fields = ('sale_price', 'created_at', 'updated_at')

    actions = ['make_visible', 'make_hidden', 'mark_as_featured', 'unmark_as_featured']

    def preview_image(self, obj):
        if obj.images:
            return format_html('<img src="{}" width="60" style="border-radius:6px;" />', obj.images[0])
        return "No Image"
    preview_image.short_description = "Image"

    def _set_flag(self, request, queryset, field, value):
        # Saved one by one so change signals fire for each product.
        for product in queryset:
            setattr(product, field, value)
            product.save(update_fields=[field, 'updated_at'])
        messages.success(request, f"Updated {queryset.count()} product(s).")

    def make_visible(self, request, queryset):
        self._set_flag(request, queryset, 'is_visible', True)
    make_visible.short_description = "Show in store"

    def make_hidden(self, request, queryset):
        self._set_flag(request, queryset, 'is_visible', False)
    make_hidden.short_description = "Hide from store"

    def mark_as_featured(self, request, queryset):
        self._set_flag(request, queryset, 'featured', True)
    mark_as_featured.short_description = "Mark as featured"

    def unmark_as_featured(self, request, queryset):
        self._set_flag(request, queryset, 'featured', False)
    unmark_as_featured.short_description = "Remove from featured"

    def delete_model(self, request, obj):
        images = list(obj.images or [])
        super().delete_model(request, obj)
        for url in images:
            storage.delete_product_image(url)

    def delete_queryset(self, request, queryset):
        images = [url for product in queryset for url in (product.images or [])]
        super().delete_queryset(request, queryset)
        for url in images:
            storage.delete_product_image(url)


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    can_delete = False
    fields = ('product_name', 'size', 'color', 'quantity', 'unit_price', 'total_price')
    readonly_fields = fields

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('short_id', 'shipping_name', 'shipping_email', 'total', 'status', 'delivery_method', 'created_at')
    list_filter = ('status', 'delivery_method', 'created_at')
    search_fields = ('shipping_name', 'shipping_email', 'id')
    inlines = [OrderItemInline]
    readonly_fields = (
        'user', 'subtotal', 'shipping_cost', 'tax', 'total',
        'shipping_name', 'shipping_email', 'shipping_phone', 'shipping_address',
        'shipping_city', 'shipping_state', 'shipping_zip', 'shipping_country',
        'delivery_method', 'notes', 'created_at', 'updated_at',
    )

    actions = [
        'mark_as_confirmed', 'mark_as_processing', 'mark_as_shipped',
        'mark_as_delivered', 'mark_as_cancelled',
    ]

    def has_add_permission(self, request):
        return False

    def save_model(self, request, obj, form, change):
        # Status edits go through the lifecycle so the customer is notified.
        if change and 'status' in form.changed_data:
            lifecycle.update_order_status(obj.pk, obj.status)
        else:
            super().save_model(request, obj, form, change)

    def _set_status(self, request, queryset, status):
        updated = lifecycle.bulk_update_status(queryset, status)
        messages.success(request, f"{len(updated)} order(s) marked as {status}.")

    def mark_as_confirmed(self, request, queryset):
        self._set_status(request, queryset, Order.CONFIRMED)
    mark_as_confirmed.short_description = "Mark as Confirmed"

    def mark_as_processing(self, request, queryset):
        self._set_status(request, queryset, Order.PROCESSING)
    mark_as_processing.short_description = "Mark as Processing"

    def mark_as_shipped(self, request, queryset):
        self._set_status(request, queryset, Order.SHIPPED)
    mark_as_shipped.short_description = "Mark as Shipped"

    def mark_as_delivered(self, request, queryset):
        self._set_status(request, queryset, Order.DELIVERED)
    mark_as_delivered.short_description = "Mark as Delivered"

    def mark_as_cancelled(self, request, queryset):
        self._set_status(request, queryset, Order.CANCELLED)
    mark_as_cancelled.short_description = "Mark as Cancelled"


@admin.register(Profile)
class ProfileAdmin(admin.ModelAdmin):
    list_display = ('full_name', 'email', 'phone', 'created_at')
    search_fields = ('full_name', 'email', 'phone')
    readonly_fields = ('created_at',)


@admin.register(UserRole)
class UserRoleAdmin(admin.ModelAdmin):
    list_display = ('user', 'role', 'created_at')
    list_filter = ('role',)
