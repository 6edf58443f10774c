from django.contrib import admin

from .models import Order, OrderItem, OrderReturn, OrderReturnItem


class OrderItemInline(admin.TabularInline):
    model = OrderItem
    extra = 0
    readonly_fields = ("product", "quantity", "price", "subtotal", "selected_size", "selected_toppings", "note")
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    """
    Admin configuration for the Order model.

    Orders are read-only here; status changes must go through the services
    so the transition guard and notifications apply.
    """

    list_display = (
        "order_number",
        "label",
        "status",
        "order_creator",
        "payment_status",
        "total_amount",
        "created_at",
    )
    list_filter = ("status", "order_creator", "payment_status", "payment_method")
    search_fields = ("order_number", "label", "customer_name", "customer_phone", "customer_table")
    readonly_fields = [field.name for field in Order._meta.fields]
    inlines = [OrderItemInline]

    def has_add_permission(self, request):
        return False


class OrderReturnItemInline(admin.TabularInline):
    model = OrderReturnItem
    extra = 0
    readonly_fields = ("order_item", "quantity", "refund_amount")
    can_delete = False

    def has_add_permission(self, request, obj=None):
        return False


@admin.register(OrderReturn)
class OrderReturnAdmin(admin.ModelAdmin):
    list_display = ("order", "return_type", "return_reason", "total_refund_amount", "created_at")
    list_filter = ("return_type", "return_reason", "refund_method")
    readonly_fields = [field.name for field in OrderReturn._meta.fields]
    inlines = [OrderReturnItemInline]

    def has_add_permission(self, request):
        return False
