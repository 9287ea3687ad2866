from sqlalchemy.orm import Session

from payment_service import ledger, models, referrals


def _wallet_txns(db: Session, user_id: int):
    wallet = ledger.get_wallet_by_user(db, user_id)
    if wallet is None:
        return []
    return ledger.list_transactions(db, wallet.id)


def test_first_booking_rewards_both_parties(db_session: Session, make_booking, make_referral):
    referral = make_referral(referrer_id=100, referred_user_id=200, referrer_reward=100, referred_reward=50)
    booking = make_booking(user_id=200)
    wallet, created = ledger.ensure_wallet(db_session, 200)
    assert created

    rewarded = referrals.reward_first_booking(db_session, booking, wallet)

    assert rewarded.id == referral.id
    assert rewarded.status == models.ReferralStatus.REWARDED
    assert rewarded.first_booking_id == booking.id
    assert rewarded.referrer_rewarded_at is not None
    assert rewarded.referred_rewarded_at is not None

    referred_wallet = ledger.get_wallet_by_user(db_session, 200)
    referrer_wallet = ledger.get_wallet_by_user(db_session, 100)
    assert referred_wallet.balance == 50
    assert referrer_wallet.balance == 100

    (referred_txn,) = _wallet_txns(db_session, 200)
    assert referred_txn.source == "referral_bonus"
    assert referred_txn.referral_id == referral.id

    (referrer_txn,) = _wallet_txns(db_session, 100)
    assert referrer_txn.booking_id == booking.id
    assert referrer_txn.referral_id == referral.id


def test_referral_is_rewarded_exactly_once(db_session: Session, make_booking, make_referral):
    make_referral(referrer_id=101, referred_user_id=201)
    first_booking = make_booking(user_id=201)
    wallet, _ = ledger.ensure_wallet(db_session, 201)
    referrals.reward_first_booking(db_session, first_booking, wallet)

    second_booking = make_booking(user_id=201)
    assert referrals.reward_first_booking(db_session, second_booking, wallet) is None

    assert len(_wallet_txns(db_session, 201)) == 1
    assert len(_wallet_txns(db_session, 101)) == 1
    assert ledger.get_wallet_by_user(db_session, 101).balance == 100


def test_no_referral_is_a_silent_noop(db_session: Session, make_booking):
    booking = make_booking(user_id=202)
    wallet, _ = ledger.ensure_wallet(db_session, 202)

    assert referrals.reward_first_booking(db_session, booking, wallet) is None
    assert _wallet_txns(db_session, 202) == []


def test_referrer_wallet_is_credited_on_top_of_existing_balance(db_session: Session, make_booking, make_referral):
    referrer_wallet, _ = ledger.ensure_wallet(db_session, 103)
    ledger.credit(db_session, referrer_wallet.id, 30, models.TransactionSource.REFERRAL_BONUS)

    make_referral(referrer_id=103, referred_user_id=203, referrer_reward=100)
    booking = make_booking(user_id=203)
    wallet, _ = ledger.ensure_wallet(db_session, 203)
    referrals.reward_first_booking(db_session, booking, wallet)

    db_session.refresh(referrer_wallet)
    assert referrer_wallet.balance == 130
    assert referrer_wallet.total_credited == 130
    latest = _wallet_txns(db_session, 103)[0]
    assert latest.balance_before == 30
    assert latest.balance_after == 130


def test_zero_reward_is_skipped_but_referral_still_closes(db_session: Session, make_booking, make_referral):
    make_referral(referrer_id=104, referred_user_id=204, referrer_reward=100, referred_reward=0)
    booking = make_booking(user_id=204)
    wallet, _ = ledger.ensure_wallet(db_session, 204)

    rewarded = referrals.reward_first_booking(db_session, booking, wallet)

    assert rewarded.status == models.ReferralStatus.REWARDED
    assert _wallet_txns(db_session, 204) == []
    assert ledger.get_wallet_by_user(db_session, 104).balance == 100


def test_only_the_oldest_pending_referral_pays(db_session: Session, make_booking, make_referral):
    oldest = make_referral(referrer_id=105, referred_user_id=205)
    newer = make_referral(referrer_id=106, referred_user_id=205)
    booking = make_booking(user_id=205)
    wallet, _ = ledger.ensure_wallet(db_session, 205)

    rewarded = referrals.reward_first_booking(db_session, booking, wallet)

    assert rewarded.id == oldest.id
    db_session.refresh(newer)
    assert newer.status == models.ReferralStatus.SIGNED_UP
    assert ledger.get_wallet_by_user(db_session, 106) is None
