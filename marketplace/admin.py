from django.contrib import admin

from .models import Block, Card, CollectionItem, Listing, Offer, Order, Report, Review, Shipment


@admin.register(Card)
class CardAdmin(admin.ModelAdmin):
    list_display = ('name', 'set_name', 'card_number', 'created_at')
    search_fields = ('name', 'set_name', 'card_number')


@admin.register(CollectionItem)
class CollectionItemAdmin(admin.ModelAdmin):
    list_display = ('card', 'owner', 'quantity', 'condition', 'created_at')
    list_filter = ('condition',)
    search_fields = ('card__name', 'owner__email')


class OfferInline(admin.TabularInline):
    model = Offer
    extra = 0
    fields = ('buyer', 'amount', 'quantity', 'counter_amount', 'status', 'expires_at')
    readonly_fields = fields


@admin.register(Listing)
class ListingAdmin(admin.ModelAdmin):
    list_display = ('id', 'card', 'seller', 'price', 'quantity_available', 'quantity',
                    'allow_offers', 'status', 'published_at')
    list_filter = ('status', 'allow_offers', 'created_at')
    search_fields = ('card__name', 'card__set_name', 'seller__email', 'seller__username')
    readonly_fields = ('created_at', 'updated_at', 'published_at', 'condition_snapshot')
    inlines = [OfferInline]

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('seller', 'card')


@admin.register(Offer)
class OfferAdmin(admin.ModelAdmin):
    list_display = ('id', 'listing', 'buyer', 'amount', 'counter_amount', 'status', 'expires_at', 'created_at')
    list_filter = ('status', 'created_at')
    search_fields = ('buyer__email', 'listing__card__name')
    readonly_fields = ('created_at', 'updated_at', 'responded_at')


class ShipmentInline(admin.StackedInline):
    model = Shipment
    extra = 0
    readonly_fields = ('carrier', 'carrier_shipment_id', 'carrier_rate_id', 'carrier_transaction_id',
                       'tracking_number', 'tracking_url', 'label_url', 'status', 'purchased_at',
                       'last_webhook_at')


@admin.register(Order)
class OrderAdmin(admin.ModelAdmin):
    list_display = ('order_number', 'buyer', 'seller', 'total', 'status', 'payment_status', 'created_at')
    list_filter = ('status', 'payment_status', 'created_at')
    search_fields = ('order_number', 'buyer__email', 'seller__email', 'payment_session_id', 'payment_intent_id')
    inlines = [ShipmentInline]

    # Money and provider references are frozen at checkout; status moves through the services only
    readonly_fields = ('order_number', 'listing', 'offer', 'buyer', 'seller', 'quantity', 'item_price',
                       'shipping_cost', 'platform_fee', 'processor_fee', 'total', 'seller_net', 'currency',
                       'payment_session_id', 'payment_intent_id', 'status', 'payment_status',
                       'paid_at', 'shipped_at', 'delivered_at', 'completed_at', 'cancelled_at',
                       'cancelled_by', 'created_at', 'updated_at')

    fieldsets = (
        ('Order', {
            'fields': ('order_number', 'listing', 'offer', 'buyer', 'seller', 'status')
        }),
        ('Money', {
            'fields': ('quantity', 'item_price', 'shipping_cost', 'platform_fee', 'processor_fee',
                       'total', 'seller_net', 'currency')
        }),
        ('Payment', {
            'fields': ('payment_status', 'payment_session_id', 'payment_intent_id')
        }),
        ('Shipping', {
            'fields': ('shipping_address',)
        }),
        ('Timestamps', {
            'fields': ('paid_at', 'shipped_at', 'delivered_at', 'completed_at', 'cancelled_at',
                       'cancelled_by', 'cancellation_reason', 'created_at', 'updated_at'),
            'classes': ('collapse',)
        })
    )

    def get_queryset(self, request):
        return super().get_queryset(request).select_related('buyer', 'seller', 'listing')


@admin.register(Review)
class ReviewAdmin(admin.ModelAdmin):
    list_display = ('order', 'reviewer', 'reviewee', 'rating', 'created_at')
    list_filter = ('rating', 'created_at')
    search_fields = ('reviewer__email', 'reviewee__email', 'order__order_number')


@admin.register(Report)
class ReportAdmin(admin.ModelAdmin):
    list_display = ('id', 'reason', 'reporter', 'target_user', 'status', 'created_at')
    list_filter = ('status', 'reason', 'created_at')
    search_fields = ('reporter__email', 'target_user__email', 'description')
    readonly_fields = ('created_at', 'resolved_at', 'resolved_by')


@admin.register(Block)
class BlockAdmin(admin.ModelAdmin):
    list_display = ('blocker', 'blocked_user', 'created_at')
    search_fields = ('blocker__email', 'blocked_user__email')
