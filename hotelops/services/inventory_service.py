"""
Inventory service
Service item catalogue, stock movements and their transaction log.
Booking-driven deductions are one-way: only quantity increases consume stock.
"""
import logging
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from sqlalchemy.orm import Session

from hotelops.domain.inventory import (
    StandardLine, positive_deltas, required_quantities, standard_inventory
)
from hotelops.models.ontology import (
    Booking, BookingStatus, Expense, InventoryTransaction, InventoryTransactionType,
    LENDING_CATEGORIES, Room, RoomRecipe, ServiceItem, Staff
)
from hotelops.models.schemas import (
    BulkImportRequest, LaundryLine, LaundryTicket, LendingItem, LiquidateRequest, RecipeItem,
    RestockItem, RoomRecipeUpsert, ServiceItemCreate, ServiceItemUpdate, ServiceUsage, UsageItem
)
from hotelops.services.ledger import (
    dump_ledger, load_lending, load_services, parse_ledger, recalculate_totals
)

logger = logging.getLogger(__name__)

STOCK_IMPORT_CATEGORY = "Nhập hàng"


class InventoryService:
    """Inventory service"""

    def __init__(self, db: Session):
        self.db = db

    # ---------- catalogue ----------

    def get_items(self, category=None, search: Optional[str] = None) -> List[ServiceItem]:
        query = self.db.query(ServiceItem)
        if category:
            query = query.filter(ServiceItem.category == category)
        if search:
            query = query.filter(ServiceItem.name.ilike(f"%{search}%"))
        return query.order_by(ServiceItem.name).all()

    def get_item(self, item_id: int) -> Optional[ServiceItem]:
        return self.db.query(ServiceItem).filter(ServiceItem.id == item_id).first()

    def get_low_stock(self) -> List[ServiceItem]:
        return self.db.query(ServiceItem).filter(ServiceItem.stock <= ServiceItem.min_stock).all()

    def create_item(self, data: ServiceItemCreate) -> ServiceItem:
        item = ServiceItem(**data.model_dump())
        self.db.add(item)
        self.db.commit()
        self.db.refresh(item)
        return item

    def update_item(self, item_id: int, data: ServiceItemUpdate) -> ServiceItem:
        item = self.get_item(item_id)
        if not item:
            raise ValueError("Service item not found")
        for key, value in data.model_dump(exclude_unset=True).items():
            setattr(item, key, value)
        self.db.commit()
        self.db.refresh(item)
        return item

    def delete_item(self, item_id: int) -> None:
        item = self.get_item(item_id)
        if not item:
            raise ValueError("Service item not found")
        self.db.delete(item)
        self.db.commit()

    # ---------- transaction log ----------

    def _log(self, item: ServiceItem, tx_type: InventoryTransactionType, quantity: int,
             price: int, facility_name: Optional[str], note: str,
             operator: Optional[Staff] = None, evidence_url: Optional[str] = None) -> InventoryTransaction:
        tx = InventoryTransaction(
            item_id=item.id,
            item_name=item.name,
            type=tx_type,
            quantity=quantity,
            price=price,
            total=price * quantity,
            staff_id=operator.id if operator else None,
            staff_name=operator.name if operator else "System",
            facility_name=facility_name,
            note=note,
            evidence_url=evidence_url,
        )
        self.db.add(tx)
        return tx

    def get_transactions(self, item_id: Optional[int] = None,
                         tx_type: Optional[InventoryTransactionType] = None,
                         facility_name: Optional[str] = None,
                         limit: int = 200) -> List[InventoryTransaction]:
        query = self.db.query(InventoryTransaction)
        if item_id:
            query = query.filter(InventoryTransaction.item_id == item_id)
        if tx_type:
            query = query.filter(InventoryTransaction.type == tx_type)
        if facility_name:
            query = query.filter(InventoryTransaction.facility_name == facility_name)
        return query.order_by(InventoryTransaction.created_at.desc(),
                              InventoryTransaction.id.desc()).limit(limit).all()

    # ---------- booking deductions (no commit, caller owns the transaction) ----------

    def deduct_services(self, booking: Booking, new_services: Sequence[ServiceUsage],
                        operator: Optional[Staff] = None) -> List[InventoryTransaction]:
        """
        Consume stock for service quantities that grew since the persisted ledger.
        Paid items log MINIBAR_SOLD, free ones AMENITY_USED, valued at cost price.
        """
        old_services = load_services(booking)
        transactions = []
        for service_id, diff in positive_deltas(new_services, old_services, key=lambda s: s.service_id):
            item = self.get_item(service_id)
            if not item:
                logger.warning(f"Booking {booking.id} uses unknown service item {service_id}")
                continue
            item.stock = (item.stock or 0) - diff
            tx_type = (InventoryTransactionType.MINIBAR_SOLD if (item.price or 0) > 0
                       else InventoryTransactionType.AMENITY_USED)
            transactions.append(self._log(
                item, tx_type, diff, item.cost_price or 0, booking.facility_name,
                f"Used in room {booking.room_code} (booking {booking.id})", operator
            ))
        return transactions

    def deduct_lending(self, booking: Booking, new_lending: Sequence[LendingItem],
                       operator: Optional[Staff] = None) -> List[InventoryTransaction]:
        """Move newly lent quantities from store stock into circulation"""
        old_lending = load_lending(booking)
        transactions = []
        for item_id, diff in positive_deltas(new_lending, old_lending, key=lambda l: l.item_id):
            item = self.get_item(item_id)
            if not item:
                logger.warning(f"Booking {booking.id} lends unknown item {item_id}")
                continue
            item.stock = max(0, (item.stock or 0) - diff)
            item.in_circulation = (item.in_circulation or 0) + diff
            transactions.append(self._log(
                item, InventoryTransactionType.OUT, diff, item.cost_price or 0, booking.facility_name,
                f"Lent in room {booking.room_code} (booking {booking.id})", operator
            ))
        return transactions

    # ---------- stock intake ----------

    def bulk_import(self, data: BulkImportRequest, operator: Optional[Staff] = None) -> List[InventoryTransaction]:
        """
        Receive purchased stock.
        Linen and assets grow total_assets; consumables track total_assets = stock.
        One purchase expense is recorded when the invoice total is positive.
        """
        items = []
        for line in data.items:
            item = self.get_item(line.item_id)
            if not item:
                raise ValueError(f"Service item {line.item_id} not found")
            items.append((item, line))

        now = datetime.now()
        try:
            if data.total_amount > 0:
                self.db.add(Expense(
                    expense_date=now,
                    facility_name=data.facility_name,
                    category=STOCK_IMPORT_CATEGORY,
                    content=f"Stock import ({len(items)} items)",
                    amount=data.total_amount,
                    note=data.note,
                    created_by=operator.id if operator else None,
                ))

            transactions = []
            for item, line in items:
                item.stock = (item.stock or 0) + line.quantity
                item.cost_price = line.import_price
                if item.category in LENDING_CATEGORIES:
                    item.total_assets = (item.total_assets or 0) + line.quantity
                else:
                    item.total_assets = item.stock
                transactions.append(self._log(
                    item, InventoryTransactionType.IN, line.quantity, line.import_price,
                    data.facility_name, data.note or "Stock import", operator, data.evidence_url
                ))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        for tx in transactions:
            self.db.refresh(tx)
        logger.info(f"Imported {len(transactions)} items, invoice total {data.total_amount}")
        return transactions

    # ---------- housekeeping driven movements ----------

    def record_minibar_usage(self, facility_name: str, room_code: str, lines: Sequence[UsageItem],
                             operator: Optional[Staff] = None) -> Optional[Booking]:
        """
        Consumption reported by housekeeping: deduct stock, log it, and add the
        paid items to the bill of the room's live booking.
        """
        booking = self.db.query(Booking).filter(
            Booking.facility_name == facility_name,
            Booking.room_code == room_code,
            Booking.status.in_([BookingStatus.CHECKED_IN, BookingStatus.CONFIRMED])
        ).order_by(Booking.check_in.desc()).first()

        try:
            services = load_services(booking) if booking else []
            for line in lines:
                item = self.get_item(line.item_id)
                if not item:
                    raise ValueError(f"Service item {line.item_id} not found")
                item.stock = max(0, (item.stock or 0) - line.quantity)
                tx_type = (InventoryTransactionType.MINIBAR_SOLD if (item.price or 0) > 0
                           else InventoryTransactionType.AMENITY_USED)
                self._log(item, tx_type, line.quantity, item.cost_price or 0, facility_name,
                          f"Used in room {room_code}", operator)

                if booking and (item.price or 0) > 0:
                    existing = next((s for s in services if s.service_id == item.id), None)
                    if existing:
                        existing.quantity += line.quantity
                        existing.total = existing.quantity * existing.price
                    else:
                        services.append(ServiceUsage(
                            service_id=item.id, name=item.name, price=item.price,
                            quantity=line.quantity, total=item.price * line.quantity
                        ))

            if booking:
                booking.services_json = dump_ledger(services)
                recalculate_totals(booking)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return booking

    def restock_room(self, lines: Sequence[RestockItem]) -> List[ServiceItem]:
        """Dirty linen leaves the room for laundry; clean stock goes into the room"""
        updated = []
        try:
            for line in lines:
                item = self.get_item(line.item_id)
                if not item:
                    raise ValueError(f"Service item {line.item_id} not found")
                if line.dirty_return_qty > 0:
                    item.in_circulation = max(0, (item.in_circulation or 0) - line.dirty_return_qty)
                    item.laundry_stock = (item.laundry_stock or 0) + line.dirty_return_qty
                if line.clean_restock_qty > 0:
                    item.stock = max(0, (item.stock or 0) - line.clean_restock_qty)
                    item.in_circulation = (item.in_circulation or 0) + line.clean_restock_qty
                updated.append(item)
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        return updated

    # ---------- laundry ----------

    def _ticket_lines(self, ticket: LaundryTicket) -> List[Tuple[ServiceItem, LaundryLine]]:
        lines = []
        for line in ticket.items:
            item = self.get_item(line.item_id)
            if not item:
                raise ValueError(f"Service item {line.item_id} not found")
            if line.damaged > line.quantity:
                raise ValueError(f"Damaged quantity of {item.name} cannot exceed the quantity received")
            lines.append((item, line))
        return lines

    def send_laundry(self, ticket: LaundryTicket, operator: Optional[Staff] = None) -> List[InventoryTransaction]:
        """
        Laundry ticket out: clean stock moves to the laundry pile.
        Each line moves at most what is in stock; lines with nothing to move are skipped.
        """
        lines = self._ticket_lines(ticket)
        batch_id = f"BATCH-OUT-{datetime.now():%Y%m%d%H%M%S}"
        transactions = []
        try:
            for item, line in lines:
                quantity = min(line.quantity, item.stock or 0)
                if quantity <= 0:
                    continue
                item.stock = (item.stock or 0) - quantity
                item.laundry_stock = (item.laundry_stock or 0) + quantity
                transactions.append(self._log(
                    item, InventoryTransactionType.LAUNDRY_SEND, quantity, item.cost_price or 0,
                    ticket.facility_name, _ticket_note("Sent to laundry", batch_id, ticket.note), operator
                ))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        for tx in transactions:
            self.db.refresh(tx)
        logger.info(f"Laundry ticket {batch_id}: sent {sum(tx.quantity for tx in transactions)} pieces")
        return transactions

    def receive_laundry(self, ticket: LaundryTicket,
                        operator: Optional[Staff] = None) -> List[InventoryTransaction]:
        """
        Laundry ticket in: washed items return to clean stock.
        Each line takes at most what is at the laundry; damaged pieces are written
        off total_assets instead of returning to stock.
        """
        lines = self._ticket_lines(ticket)
        batch_id = f"BATCH-IN-{datetime.now():%Y%m%d%H%M%S}"
        transactions = []
        try:
            for item, line in lines:
                quantity = min(line.quantity, item.laundry_stock or 0)
                if quantity <= 0:
                    continue
                damaged = min(line.damaged, quantity)
                item.laundry_stock = (item.laundry_stock or 0) - quantity
                item.stock = (item.stock or 0) + quantity - damaged
                note = _ticket_note("Back from laundry", batch_id, ticket.note)
                if damaged:
                    item.total_assets = max(0, (item.total_assets or 0) - damaged)
                    note += f". Damaged: {damaged}"
                transactions.append(self._log(
                    item, InventoryTransactionType.LAUNDRY_RECEIVE, quantity, item.cost_price or 0,
                    ticket.facility_name, note, operator
                ))
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise

        for tx in transactions:
            self.db.refresh(tx)
        logger.info(f"Laundry ticket {batch_id}: received {sum(tx.quantity for tx in transactions)} pieces")
        return transactions

    def liquidate(self, data: LiquidateRequest, operator: Optional[Staff] = None) -> InventoryTransaction:
        """Write off clean stock (broken, lost, expired)"""
        item = self.get_item(data.item_id)
        if not item:
            raise ValueError("Service item not found")
        if (item.stock or 0) < data.quantity:
            raise ValueError(f"Not enough stock of {item.name} to liquidate ({item.stock or 0} left)")

        try:
            item.stock = (item.stock or 0) - data.quantity
            if item.category in LENDING_CATEGORIES:
                item.total_assets = max(0, (item.total_assets or 0) - data.quantity)
            else:
                item.total_assets = item.stock
            tx = self._log(
                item, InventoryTransactionType.OUT, data.quantity, item.cost_price or 0,
                data.facility_name, f"Liquidated. {data.note}" if data.note else "Liquidated",
                operator, data.evidence_url
            )
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise
        self.db.refresh(tx)
        logger.info(f"Liquidated {data.quantity} x {item.name}")
        return tx

    # ---------- room recipes & standard stock ----------

    def get_recipes(self) -> List[RoomRecipe]:
        return self.db.query(RoomRecipe).order_by(RoomRecipe.room_type).all()

    def recipe_items(self, recipe: RoomRecipe) -> List[RecipeItem]:
        return parse_ledger(recipe.items_json, RecipeItem, "items_json", recipe.id)

    def upsert_recipe(self, data: RoomRecipeUpsert) -> RoomRecipe:
        """One recipe per room type; saving again replaces its items"""
        for line in data.items:
            if not self.get_item(line.item_id):
                raise ValueError(f"Service item {line.item_id} not found")
        recipe = self.db.query(RoomRecipe).filter(RoomRecipe.room_type == data.room_type).first()
        if not recipe:
            recipe = RoomRecipe(room_type=data.room_type)
            self.db.add(recipe)
        recipe.description = data.description
        recipe.items_json = dump_ledger(data.items)
        self.db.commit()
        self.db.refresh(recipe)
        return recipe

    def delete_recipe(self, room_type: str) -> None:
        recipe = self.db.query(RoomRecipe).filter(RoomRecipe.room_type == room_type).first()
        if not recipe:
            raise ValueError("Room recipe not found")
        self.db.delete(recipe)
        self.db.commit()

    def standard_stock(self) -> List[StandardLine]:
        """Owned assets against what every room's recipe requires"""
        recipes = {r.room_type: self.recipe_items(r) for r in self.get_recipes()}
        room_types = [room_type for (room_type,) in self.db.query(Room.room_type)]
        required = required_quantities(room_types, recipes)
        return standard_inventory(self.db.query(ServiceItem).order_by(ServiceItem.name).all(), required)


def _ticket_note(action: str, batch_id: str, note: Optional[str]) -> str:
    text = f"{action}, ticket #{batch_id}"
    return f"{text}. {note}" if note else text
