#!/usr/bin/env python3
"""
Battle loop for the ship combat engine.

Runs a round-ordered battle between a player fleet and an enemy fleet:

    (a) captain decisions for every active enemy ship
    (b) victory check
    (c) missile launches (queued orders, then automatic rack fire)
    (d) sandcaster screens and direct fire through the dispatcher
    (e) missile lifecycle: ECM and point defense against arriving
        missiles, then impacts
    (f) destruction checks and victory check
    (g) round counter advances; the round limit ends the battle

Fire within a round is simultaneous: a ship reduced to 0 hull still
fires in the round it was hit and is marked destroyed in phase (f).

Every action is recorded as a BattleEvent for analysis and replay.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum, auto
from typing import Any, Callable, Optional, Union

from .captain import CaptainOrder, TacticalPicture, captain_decision
from .combat import AttackContext, AttackOptions, DefenseContext
from .dice import DiceRoller
from .dispatcher import WeaponDispatcher
from .missiles import MissileLifecycle, MissileUpdate, can_launch_missile_at_range
from .models import Combatant, Fleet, Missile, RangeBand, Weapon
from .victory import BattleOutcome, VictoryEvaluator


logger = logging.getLogger("shipcombat.simulation")


# =============================================================================
# BATTLE EVENTS
# =============================================================================

class BattleEventType(Enum):
    """Types of events that can occur during a battle."""
    # Battle flow
    BATTLE_STARTED = auto()
    ROUND_STARTED = auto()
    BATTLE_ENDED = auto()

    # Captain decisions
    CAPTAIN_DECISION = auto()
    SHIP_FLED = auto()
    SHIP_SURRENDERED = auto()

    # Missiles
    MISSILE_LAUNCHED = auto()
    LAUNCH_BLOCKED = auto()
    MISSILE_JAMMED = auto()
    ECM_FAILED = auto()
    PD_INTERCEPT = auto()
    PD_MISSED = auto()
    MISSILE_IMPACT = auto()
    MISSILE_MISSED = auto()

    # Direct fire
    SANDCASTER_FIRED = auto()
    ATTACK_HIT = auto()
    ATTACK_MISSED = auto()
    ATTACK_BLOCKED = auto()

    # Damage
    SHIP_DESTROYED = auto()


@dataclass
class BattleEvent:
    """
    An event that occurs during a battle.

    Attributes:
        event_type: The type of event.
        round: Round in which the event occurred.
        ship_id: ID of the acting ship (if applicable).
        target_id: ID of the target (if applicable).
        data: Additional event-specific data.
    """
    event_type: BattleEventType
    round: int
    ship_id: Optional[str] = None
    target_id: Optional[str] = None
    data: dict = field(default_factory=dict)

    def __str__(self) -> str:
        ship_str = f"[{self.ship_id}]" if self.ship_id else ""
        target_str = f" -> {self.target_id}" if self.target_id else ""
        return f"R{self.round} {ship_str} {self.event_type.name}{target_str}"


# =============================================================================
# BATTLE STATE
# =============================================================================

@dataclass
class BattleState:
    """
    Mutable state of one battle.

    Created at battle start and owned exclusively by its BattleSimulation.

    Attributes:
        round: Current round (starts at 1).
        player_fleet: Player side.
        enemy_fleet: Enemy side (captain AI controlled).
        missiles: Every missile launched this battle.
        log: Event log in order of occurrence.
        range: Range band between the fleets.
        outcome: Current outcome (ONGOING until the battle ends).
        reason: Why the battle ended.
        rounds_played: Round in which the battle ended.
        missiles_launched: Launches that left the rack.
        flees: Ships whose captain fled.
        surrenders: Ships whose captain surrendered.
    """
    player_fleet: Fleet
    enemy_fleet: Fleet
    range: RangeBand = RangeBand.MEDIUM
    round: int = 1
    missiles: list[Missile] = field(default_factory=list)
    log: list[BattleEvent] = field(default_factory=list)
    outcome: BattleOutcome = BattleOutcome.ONGOING
    reason: str = ""
    rounds_played: int = 0
    missiles_launched: int = 0
    flees: int = 0
    surrenders: int = 0

    @property
    def finished(self) -> bool:
        return self.outcome != BattleOutcome.ONGOING

    @property
    def ships(self) -> dict[str, Combatant]:
        """All ships by id."""
        return {s.ship_id: s for s in list(self.player_fleet) + list(self.enemy_fleet)}

    def side_of(self, ship_id: str) -> Optional[str]:
        if self.player_fleet.get_ship(ship_id) is not None:
            return "player"
        if self.enemy_fleet.get_ship(ship_id) is not None:
            return "enemy"
        return None

    def opponents_of(self, ship_id: str) -> Fleet:
        return self.enemy_fleet if self.side_of(ship_id) == "player" else self.player_fleet


@dataclass
class BattleSummary:
    """
    Terminal result of a battle.

    Attributes:
        winner: 'player', 'enemy' or 'stalemate'.
        rounds: Round in which the battle ended.
        per_ship_hull_pct: Remaining hull percentage (0-100) per ship id.
        missiles_launched: Missiles that left their racks.
        flees: Ships that fled.
        surrenders: Ships that surrendered.
        reason: Human readable end condition.
    """
    winner: str
    rounds: int
    per_ship_hull_pct: dict[str, float]
    missiles_launched: int = 0
    flees: int = 0
    surrenders: int = 0
    reason: str = ""

    def to_dict(self) -> dict[str, Any]:
        return {
            "winner": self.winner,
            "rounds": self.rounds,
            "per_ship_hull_pct": dict(self.per_ship_hull_pct),
            "missiles_launched": self.missiles_launched,
            "flees": self.flees,
            "surrenders": self.surrenders,
            "reason": self.reason,
        }


# =============================================================================
# BATTLE SIMULATION
# =============================================================================

class BattleSimulation:
    """
    Round-ordered battle between two fleets.

    Example:
        sim = BattleSimulation(player_fleet, enemy_fleet, start_range="Long", seed=42)
        summary = sim.run()

    Args:
        player_fleet: Player side.
        enemy_fleet: Enemy side; its captains decide to fight, flee or surrender.
        start_range: Range band between the fleets.
        max_rounds: Round limit.
        dice: Dice roller for this battle.
        seed: Seed for a fresh dice roller (ignored when dice is given).
        flight_times: Overrides for the missile flight time table.
        auto_fire: Whether missile racks fire automatically each round.
    """

    def __init__(
        self,
        player_fleet: Fleet,
        enemy_fleet: Fleet,
        start_range: Union[str, RangeBand] = "Medium",
        max_rounds: int = 10,
        dice: Optional[DiceRoller] = None,
        seed: Optional[int] = None,
        flight_times: Optional[dict[RangeBand, int]] = None,
        auto_fire: bool = True,
    ):
        if max_rounds <= 0:
            raise ValueError(f"max_rounds must be positive, got {max_rounds}")
        band = RangeBand.parse(start_range)
        if band is None:
            raise ValueError(f"Unknown start range: {start_range!r}")

        self.dispatcher = WeaponDispatcher(dice=dice, seed=seed)
        self.lifecycle = MissileLifecycle(self.dispatcher, flight_times)
        self.evaluator = VictoryEvaluator()
        self.max_rounds = max_rounds
        self.auto_fire = auto_fire

        self.state = BattleState(
            player_fleet=player_fleet,
            enemy_fleet=enemy_fleet,
            range=band,
            missiles=self.lifecycle.missiles,
        )

        self._launch_queue: list[tuple[str, str]] = []
        self._laser_screens: dict[str, int] = {}
        self._missile_screens: dict[str, int] = {}
        self._event_callbacks: list[Callable[[BattleEvent], None]] = []
        self._started = False

    @classmethod
    def from_config(
        cls,
        config,
        fleet_data: Optional[dict] = None,
        dice: Optional[DiceRoller] = None,
    ) -> BattleSimulation:
        """
        Build a battle with fresh ships from a BattleConfig.

        Args:
            config: BattleConfig naming both fleets.
            fleet_data: Loaded fleet catalog (defaults to the bundled catalog).
            dice: Dice roller (defaults to one seeded from config.seed).
        """
        from .fleet_config import build_fleet, load_fleet_data

        if fleet_data is None:
            fleet_data = load_fleet_data()
        return cls(
            player_fleet=build_fleet(fleet_data, config.player_fleet),
            enemy_fleet=build_fleet(fleet_data, config.enemy_fleet),
            start_range=config.start_range,
            max_rounds=config.max_rounds,
            dice=dice,
            seed=config.seed,
        )

    # -------------------------------------------------------------------------
    # Events
    # -------------------------------------------------------------------------

    def add_event_callback(self, callback: Callable[[BattleEvent], None]) -> None:
        """Register a function called with every new event."""
        self._event_callbacks.append(callback)

    def remove_event_callback(self, callback: Callable[[BattleEvent], None]) -> bool:
        if callback in self._event_callbacks:
            self._event_callbacks.remove(callback)
            return True
        return False

    @property
    def events(self) -> list[BattleEvent]:
        return self.state.log

    def get_events_by_type(self, event_type: BattleEventType) -> list[BattleEvent]:
        return [e for e in self.state.log if e.event_type == event_type]

    def get_events_for_ship(self, ship_id: str) -> list[BattleEvent]:
        """Events where the ship acted or was the target."""
        return [
            e for e in self.state.log
            if e.ship_id == ship_id or e.target_id == ship_id
        ]

    def _log_event(
        self,
        event_type: BattleEventType,
        ship_id: Optional[str] = None,
        target_id: Optional[str] = None,
        data: Optional[dict] = None,
    ) -> BattleEvent:
        """Log a battle event and notify callbacks."""
        event = BattleEvent(
            event_type=event_type,
            round=self.state.round,
            ship_id=ship_id,
            target_id=target_id,
            data=data or {},
        )
        self.state.log.append(event)
        logger.debug("%s %s", event, event.data)

        for callback in self._event_callbacks:
            try:
                callback(event)
            except Exception as e:
                logger.warning("Event callback error: %s", e)

        return event

    # -------------------------------------------------------------------------
    # Orders
    # -------------------------------------------------------------------------

    def queue_missile_launch(self, attacker_id: str, target_id: str) -> None:
        """
        Order one missile launch for the next round's launch phase.

        A ship with queued launches skips automatic rack fire that round.
        """
        self._launch_queue.append((attacker_id, target_id))

    # -------------------------------------------------------------------------
    # Round loop
    # -------------------------------------------------------------------------

    def run(self) -> BattleSummary:
        """Play rounds until the battle ends and return the summary."""
        while not self.state.finished:
            self.step()
        return self.summary()

    def step(self) -> list[BattleEvent]:
        """
        Play one full round.

        Returns:
            Events logged during the round (empty once the battle is over).
        """
        state = self.state
        if state.finished:
            return []

        first_event = len(state.log)
        if not self._started:
            self._started = True
            logger.info(
                "Battle started: %d vs %d ships at %s range",
                len(state.player_fleet), len(state.enemy_fleet), state.range.display_name,
            )
            self._log_event(BattleEventType.BATTLE_STARTED, data={
                "range": state.range.value,
                "max_rounds": self.max_rounds,
                "player_ships": [s.ship_id for s in state.player_fleet],
                "enemy_ships": [s.ship_id for s in state.enemy_fleet],
            })

        self._log_event(BattleEventType.ROUND_STARTED)

        # (a) captain decisions, (b) victory check
        self._captain_phase()
        if self._check_victory():
            return state.log[first_event:]

        # (c) launches, (d) direct fire, (e) missiles
        self._launch_phase()
        self._raise_sandcaster_screens()
        self._direct_fire_phase()
        self._missile_phase()

        # (f) destruction
        self._destruction_phase()
        if self._check_victory():
            return state.log[first_event:]

        # (g) next round
        self._laser_screens.clear()
        self._missile_screens.clear()
        if state.round >= self.max_rounds:
            self._check_victory(at_round_limit=True)
        else:
            state.round += 1

        return state.log[first_event:]

    def summary(self) -> BattleSummary:
        """Summary of the battle so far ('ongoing' until it ends)."""
        state = self.state
        return BattleSummary(
            winner=state.outcome.value,
            rounds=state.rounds_played or state.round,
            per_ship_hull_pct={
                ship_id: round(ship.hull_percent * 100.0, 1)
                for ship_id, ship in state.ships.items()
            },
            missiles_launched=state.missiles_launched,
            flees=state.flees,
            surrenders=state.surrenders,
            reason=state.reason,
        )

    # -------------------------------------------------------------------------
    # Phases
    # -------------------------------------------------------------------------

    def _captain_phase(self) -> None:
        state = self.state
        for ship in state.enemy_fleet.active_ships:
            picture = TacticalPicture(
                friendly_fleet=state.enemy_fleet.active_ships,
                enemy_fleet=state.player_fleet.active_ships,
            )
            order = captain_decision(ship, picture)
            self._log_event(BattleEventType.CAPTAIN_DECISION, ship.ship_id, data={
                "order": order.value,
                "hull_percent": ship.hull_percent,
                "odds": picture.odds,
            })

            if order == CaptainOrder.FLEE:
                ship.fled = True
                state.flees += 1
                logger.info("%s flees the battle", ship.name)
                self._log_event(BattleEventType.SHIP_FLED, ship.ship_id)
            elif order == CaptainOrder.SURRENDER:
                ship.surrendered = True
                state.surrenders += 1
                logger.info("%s surrenders", ship.name)
                self._log_event(BattleEventType.SHIP_SURRENDERED, ship.ship_id)

    def _check_victory(self, at_round_limit: bool = False) -> bool:
        state = self.state
        outcome, reason = self.evaluator.evaluate(
            state.player_fleet, state.enemy_fleet, at_round_limit=at_round_limit
        )
        if outcome == BattleOutcome.ONGOING:
            return False

        state.outcome = outcome
        state.reason = reason
        state.rounds_played = state.round
        logger.info("Battle ended in round %d: %s (%s)", state.round, outcome.value, reason)
        self._log_event(BattleEventType.BATTLE_ENDED, data={
            "outcome": outcome.value,
            "reason": reason,
        })
        return True

    def _launch_phase(self) -> None:
        state = self.state
        ships = state.ships
        queued_by: set[str] = set()

        for attacker_id, target_id in self._launch_queue:
            queued_by.add(attacker_id)
            attacker = ships.get(attacker_id)
            target = ships.get(target_id)
            if attacker is None or target is None or not attacker.is_active or not target.is_active:
                self._log_event(BattleEventType.LAUNCH_BLOCKED, attacker_id, target_id, {
                    "reason": "attacker or target not in the fight",
                })
                continue
            racks = self._missile_racks(attacker)
            weapon = racks[0] if racks else Weapon(type="missile", damage="4d6")
            self._launch(attacker, target, weapon)
        self._launch_queue.clear()

        if not self.auto_fire or not can_launch_missile_at_range(state.range):
            return

        for ship in state.player_fleet.active_ships + state.enemy_fleet.active_ships:
            if ship.ship_id in queued_by:
                continue
            for weapon in self._missile_racks(ship):
                if ship.ammo.missiles <= 0:
                    break
                target = self._select_target(ship)
                if target is None:
                    break
                self._launch(ship, target, weapon)

    def _launch(self, attacker: Combatant, target: Combatant, weapon: Weapon) -> None:
        result, missile = self.lifecycle.launch(
            attacker, target, weapon, self.state.range, self.state.round
        )
        if missile is None:
            self._log_event(BattleEventType.LAUNCH_BLOCKED, attacker.ship_id, target.ship_id, {
                "reason": result.reason,
            })
            return

        self.state.missiles_launched += 1
        self._log_event(BattleEventType.MISSILE_LAUNCHED, attacker.ship_id, target.ship_id, {
            "missile_id": missile.id,
            "arrival_round": missile.arrival_round,
            "range_bonus": missile.range_bonus,
            "missile_type": missile.missile_type,
            "ammo_remaining": result.ammo_remaining,
        })

    def _raise_sandcaster_screens(self) -> None:
        """Each ship with a sandcaster fires it at most once per round, in range only."""
        state = self.state
        if not self.dispatcher.can_use_sandcaster_at_range(state.range):
            return

        for ship in state.player_fleet.active_ships + state.enemy_fleet.active_ships:
            mounts = [
                w for w in ship.turrets
                if self.dispatcher.normalize_type(w.type) == "sandcaster"
            ]
            if not mounts or ship.ammo.sandcaster <= 0:
                continue
            if not state.opponents_of(ship.ship_id).active_ships:
                continue

            attack_type = "missile" if self.lifecycle.arriving(ship.ship_id, state.round) else "laser"
            result = self.dispatcher.use_sandcaster(DefenseContext(
                defender=ship,
                options=AttackOptions(gunner_skill=ship.gunner_skill),
                attack_type=attack_type,
            ))
            if result.blocked:
                continue

            if result.success:
                screens = self._missile_screens if attack_type == "missile" else self._laser_screens
                screens[ship.ship_id] = result.armor_bonus
            self._log_event(BattleEventType.SANDCASTER_FIRED, ship.ship_id, data={
                "success": result.success,
                "armor_bonus": result.armor_bonus,
                "attack_type": attack_type,
                "ammo_remaining": ship.ammo.sandcaster,
            })

    def _direct_fire_phase(self) -> None:
        state = self.state
        for ship in state.player_fleet.active_ships + state.enemy_fleet.active_ships:
            for weapon in ship.turrets:
                if not self.dispatcher.is_direct_fire(weapon):
                    continue
                target = self._select_target(ship)
                if target is None:
                    break

                screen = self._laser_screens.get(target.ship_id, 0)
                result = self.dispatcher.attack(AttackContext.between(
                    ship, target, weapon, state.range, armor_bonus=screen
                ))

                if result.blocked:
                    self._log_event(BattleEventType.ATTACK_BLOCKED, ship.ship_id, target.ship_id, {
                        "weapon": weapon.name,
                        "reason": result.reason,
                    })
                    continue

                self._laser_screens.pop(target.ship_id, None)
                if result.hit:
                    lost = target.apply_damage(result.damage)
                    self._log_event(BattleEventType.ATTACK_HIT, ship.ship_id, target.ship_id, {
                        "weapon": weapon.name,
                        "damage": lost,
                        "breakdown": result.damage_result.breakdown if result.damage_result else "",
                        "hull_remaining": target.hull,
                    })
                else:
                    self._log_event(BattleEventType.ATTACK_MISSED, ship.ship_id, target.ship_id, {
                        "weapon": weapon.name,
                        "total": result.attack_roll.total if result.attack_roll else None,
                    })

    def _missile_phase(self) -> None:
        updates = self.lifecycle.advance(
            self.state.ships, self.state.round, self._missile_screens
        )
        for update in updates:
            self._log_missile_update(update)

    def _log_missile_update(self, update: MissileUpdate) -> None:
        missile = update.missile
        if update.action == "jammed":
            self._log_event(BattleEventType.MISSILE_JAMMED, missile.target_id, missile.owner_id, {
                "missile_id": missile.id,
                "total": update.result.total,
            })
        elif update.action == "ecm_failed":
            self._log_event(BattleEventType.ECM_FAILED, missile.target_id, missile.owner_id, {
                "missile_id": missile.id,
                "total": update.result.total,
                "smart_resisted": update.result.smart_resist is not None,
            })
        elif update.action == "intercepted":
            self._log_event(BattleEventType.PD_INTERCEPT, missile.target_id, missile.owner_id, {
                "missile_id": missile.id,
                "total": update.result.total,
            })
        elif update.action == "survived_pd":
            self._log_event(BattleEventType.PD_MISSED, missile.target_id, missile.owner_id, {
                "missile_id": missile.id,
                "total": update.result.total,
            })
        elif update.action == "impacted":
            radiation = update.result.radiation
            self._log_event(BattleEventType.MISSILE_IMPACT, missile.owner_id, missile.target_id, {
                "missile_id": missile.id,
                "missile_type": missile.missile_type,
                "damage": update.damage,
                "sandcaster_bonus": update.result.sandcaster_bonus,
                "crew_damage": radiation.crew_damage if radiation is not None else 0,
            })
        elif update.action == "missed":
            self._log_event(BattleEventType.MISSILE_MISSED, missile.owner_id, missile.target_id, {
                "missile_id": missile.id,
                "total": update.result.total,
                "next_attempt": update.result.next_attempt,
            })

    def _destruction_phase(self) -> None:
        for ship in self.state.ships.values():
            if ship.check_destroyed():
                logger.info("%s destroyed", ship.name)
                self._log_event(BattleEventType.SHIP_DESTROYED, ship.ship_id, data={
                    "hull": ship.hull,
                    "power": ship.power,
                })

    # -------------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------------

    def _missile_racks(self, ship: Combatant) -> list[Weapon]:
        return [
            w for w in ship.turrets
            if self.dispatcher.normalize_type(w.type) == "missile"
        ]

    def _select_target(self, ship: Combatant) -> Optional[Combatant]:
        """Most damaged active opponent that still has hull."""
        candidates = [
            s for s in self.state.opponents_of(ship.ship_id).active_ships
            if s.hull > 0
        ]
        if not candidates:
            return None
        return min(candidates, key=lambda s: s.hull_percent)
