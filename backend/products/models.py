from django.db import models
from django.utils.translation import gettext_lazy as _


class Product(models.Model):
    """
    Menu item referenced by order lines.

    Orders capture the price at add-time, so editing a product never changes
    existing orders.
    """

    name = models.CharField(max_length=200, help_text=_("Name of the product."))
    price = models.DecimalField(
        max_digits=10,
        decimal_places=2,
        help_text=_("The selling price of the product."),
    )
    is_active = models.BooleanField(default=True, db_index=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["name"]
        verbose_name = _("Product")
        verbose_name_plural = _("Products")

    def __str__(self):
        return self.name
